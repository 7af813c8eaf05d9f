"""Citation normalization and link resolution."""

from urllib.parse import quote

from repowiki.constants.source import GITHUB_WEB_BASE
from repowiki.generation.schemas import Citation, CitationDraft


def repo_url(owner: str, name: str) -> str:
    """Web URL of a GitHub repository."""
    return f"{GITHUB_WEB_BASE}/{owner}/{name}"


def resolve_citation_url(repo_url: str, file: str, lines: tuple[int, int] | None = None) -> str:
    """Build a link to a file (and optional line range) at HEAD.

    Pure function of its arguments, so resolving the same citation twice
    yields the same string.

    Args:
        repo_url: Web URL of the repository, without trailing slash.
        file: Path relative to the repository root.
        lines: Optional 1-based inclusive (start, end) range.

    Returns:
        URL such as ``https://github.com/o/r/blob/HEAD/src/app.py#L5-L9``.
    """
    url = f"{repo_url.rstrip('/')}/blob/HEAD/{quote(file.lstrip('/'))}"
    if lines is not None:
        start, end = lines
        url += f"#L{start}-L{end}"
    return url


def normalize_citation(draft: CitationDraft, repo_url: str) -> Citation:
    """Convert a model-reported citation into a resolved Citation.

    A start or end of 0 is the model's "unknown" sentinel and yields no line
    range. A reversed range is swapped rather than dropped.
    """
    lines: tuple[int, int] | None = None
    if draft.start_line > 0 and draft.end_line > 0:
        start, end = sorted((draft.start_line, draft.end_line))
        lines = (start, end)
    return Citation(
        file=draft.file,
        lines=lines,
        url=resolve_citation_url(repo_url, draft.file, lines),
    )
