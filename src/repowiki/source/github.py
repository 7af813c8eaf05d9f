"""GitHub content source: repository trees, file contents and key-file selection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

import httpx

from repowiki.constants.source import (
    GITHUB_API_BASE,
    GITHUB_RAW_BASE,
    KEY_FILE_PATTERNS,
    MAX_FILE_CHARS,
    MAX_KEY_FILES,
    REQUEST_TIMEOUT_SECONDS,
    TRUNCATION_MARKER,
)
from repowiki.errors import SourceUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeItem:
    """One entry of a repository tree."""

    path: str
    kind: Literal["blob", "tree"]
    size: int | None = None


def truncate_content(text: str, max_chars: int = MAX_FILE_CHARS) -> str:
    """Cut text to max_chars, appending the truncation marker when cut."""
    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


def select_key_files(tree: list[TreeItem], limit: int = MAX_KEY_FILES) -> list[str]:
    """Pick the files that best summarize a repository.

    Every path is tested against KEY_FILE_PATTERNS; matches keep tree order
    and the list is capped at limit entries.

    Args:
        tree: Repository tree items.
        limit: Maximum number of paths to return.

    Returns:
        Matching paths in tree order.
    """
    key_files = [
        item.path
        for item in tree
        if any(pattern.search(item.path) for pattern in KEY_FILE_PATTERNS)
    ]
    return key_files[:limit]


class GitHubGateway:
    """Read-only access to public GitHub repositories."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        api_base: str = GITHUB_API_BASE,
        raw_base: str = GITHUB_RAW_BASE,
        token: str | None = None,
        max_file_chars: int = MAX_FILE_CHARS,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Optional shared HTTP client. One is created lazily if omitted.
            api_base: Base URL of the GitHub REST API.
            raw_base: Base URL of the raw content host.
            token: Optional GitHub token for higher rate limits.
            max_file_chars: Truncation budget for file contents.
            timeout: Request timeout in seconds.
        """
        self._client = client
        self._owns_client = client is None
        self.api_base = api_base.rstrip("/")
        self.raw_base = raw_base.rstrip("/")
        self.token = token
        self.max_file_chars = max_file_chars
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def _api_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def list_files(self, owner: str, name: str) -> list[TreeItem]:
        """List every blob in the repository's HEAD tree.

        Raises:
            SourceUnavailable: If the tree cannot be fetched.
        """
        url = f"{self.api_base}/repos/{owner}/{name}/git/trees/HEAD"
        try:
            response = await self._get_client().get(
                url, params={"recursive": "1"}, headers=self._api_headers()
            )
        except httpx.HTTPError as e:
            raise SourceUnavailable(
                f"GitHub API error: {e}", owner=owner, name=name
            ) from e

        if response.status_code != 200:
            raise SourceUnavailable(
                f"GitHub API error: {response.status_code} {response.reason_phrase}",
                owner=owner,
                name=name,
                status_code=response.status_code,
            )

        malformed = SourceUnavailable(
            f"GitHub API error: malformed tree response for {owner}/{name}",
            owner=owner,
            name=name,
            status_code=response.status_code,
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise malformed from e

        entries = payload.get("tree", []) if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise malformed

        tree = [
            TreeItem(path=entry["path"], kind="blob", size=entry.get("size"))
            for entry in entries
            if isinstance(entry, dict) and entry.get("type") == "blob" and "path" in entry
        ]
        logger.info(f"Fetched tree for {owner}/{name}: {len(tree)} files")
        return tree

    async def read_file(self, owner: str, name: str, path: str) -> str:
        """Read one file from HEAD, truncated to the character budget.

        Raises:
            SourceUnavailable: If the file cannot be fetched.
        """
        url = f"{self.raw_base}/{owner}/{name}/HEAD/{path}"
        try:
            response = await self._get_client().get(url)
        except httpx.HTTPError as e:
            raise SourceUnavailable(
                f"Failed to fetch {path}: {e}", owner=owner, name=name
            ) from e

        if response.status_code != 200:
            raise SourceUnavailable(
                f"Failed to fetch {path}: {response.status_code}",
                owner=owner,
                name=name,
                status_code=response.status_code,
            )

        return truncate_content(response.text, self.max_file_chars)

    async def read_files(
        self, owner: str, name: str, paths: list[str], placeholder: str
    ) -> list[str]:
        """Read several files, replacing unreadable ones with a placeholder.

        Returns:
            One "--- path ---" block per input path, in input order.
        """
        async def read_one(path: str) -> str:
            try:
                content = await self.read_file(owner, name, path)
            except SourceUnavailable as e:
                logger.warning(f"Could not read {owner}/{name}:{path}: {e}")
                content = placeholder
            return f"--- {path} ---\n{content}"

        return list(await asyncio.gather(*(read_one(path) for path in paths)))

    async def aclose(self) -> None:
        """Close the HTTP client if this gateway created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
