"""Source hosting access."""

from repowiki.source.github import GitHubGateway, TreeItem, select_key_files, truncate_content

__all__ = [
    "GitHubGateway",
    "TreeItem",
    "select_key_files",
    "truncate_content",
]
