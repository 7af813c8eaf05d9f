"""Shared pytest fixtures for all tests.

Fakes here stand in for GitHub and the LLM provider so the pipeline can be
exercised without network access.
"""

import asyncio

import pytest

from repowiki.api.deps import get_settings
from repowiki.config import load_settings
from repowiki.errors import PageBuildFailed, SourceUnavailable
from repowiki.generation.schemas import (
    AnalyzedSubsystem,
    Citation,
    RepoAnalysis,
    SubsystemPage,
)
from repowiki.source.github import GitHubGateway, TreeItem, truncate_content


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are lru_cached; every test starts from a clean environment."""
    load_settings.cache_clear()
    get_settings.cache_clear()
    yield
    load_settings.cache_clear()
    get_settings.cache_clear()


class FakeGateway(GitHubGateway):
    """Gateway serving an in-memory repository.

    read_files() is inherited, so placeholder handling is the real one.
    """

    def __init__(self, files: dict[str, str], missing: bool = False, unreadable=(), **kwargs):
        super().__init__(**kwargs)
        self.files = files
        self.missing = missing
        self.unreadable = set(unreadable)
        self.reads: list[str] = []

    async def list_files(self, owner, name):
        if self.missing:
            raise SourceUnavailable(
                "GitHub API error: 404 Not Found", owner=owner, name=name, status_code=404
            )
        return [TreeItem(path=path, kind="blob", size=len(text)) for path, text in self.files.items()]

    async def read_file(self, owner, name, path):
        self.reads.append(path)
        if path in self.unreadable or path not in self.files:
            raise SourceUnavailable(f"Failed to fetch {path}: 404", owner=owner, name=name)
        return truncate_content(self.files[path], self.max_file_chars)


class StubAnalyzer:
    """Returns a fixed manifest, or raises a fixed error."""

    def __init__(self, analysis: RepoAnalysis | None = None, error: Exception | None = None):
        self.analysis = analysis
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def analyze(self, owner, name):
        self.calls.append((owner, name))
        if self.error is not None:
            raise self.error
        return self.analysis


class StubPageBuilder:
    """Builds canned pages with optional per-subsystem delays and failures.

    Tracks how many builds ran concurrently and which builds were cancelled.
    """

    def __init__(self, delays=None, failing=(), block=False, expected=None):
        self.delays = delays or {}
        self.failing = set(failing)
        self.block = block
        self.active = 0
        self.max_active = 0
        self.started: list[str] = []
        self.cancelled: list[str] = []
        self.all_started = asyncio.Event()
        self.expected = expected

    async def build(self, owner, name, descriptor: AnalyzedSubsystem) -> SubsystemPage:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.append(descriptor.id)
        if self.expected is not None and len(self.started) >= self.expected:
            self.all_started.set()
        try:
            if self.block:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delays.get(descriptor.id, 0))
            if descriptor.id in self.failing:
                raise PageBuildFailed(descriptor.id, f"model call failed for {descriptor.id}")
            return make_page(descriptor)
        except asyncio.CancelledError:
            self.cancelled.append(descriptor.id)
            raise
        finally:
            self.active -= 1


def make_analysis(ids=("search", "export", "auth")) -> RepoAnalysis:
    return RepoAnalysis(
        repo_name="hello-world",
        description="A sample repository.",
        subsystems=[
            AnalyzedSubsystem(
                id=subsystem_id,
                name=subsystem_id.title(),
                description=f"Handles {subsystem_id}.",
                relevant_files=[f"src/{subsystem_id}.py"],
            )
            for subsystem_id in ids
        ],
    )


def make_page(descriptor: AnalyzedSubsystem) -> SubsystemPage:
    return SubsystemPage(
        id=descriptor.id,
        name=descriptor.name,
        description=descriptor.description,
        content=f"<p>{descriptor.name} documentation</p>",
        citations=[Citation(file=descriptor.relevant_files[0], lines=(1, 10))]
        if descriptor.relevant_files
        else [],
        entry_points=[],
    )


@pytest.fixture
def sample_files():
    """A small repository with a README, a manifest and some sources."""
    return {
        "README.md": "# hello-world\nMy first repository.",
        "package.json": '{"name": "hello-world"}',
        "src/search.py": "def search(q):\n    return []\n",
        "src/export.py": "def export(rows):\n    pass\n",
        "src/auth.py": "def login(user):\n    pass\n",
        "docs/guide.txt": "Usage guide",
    }


@pytest.fixture
def fake_gateway(sample_files):
    return FakeGateway(sample_files)


@pytest.fixture
def gateway_factory():
    return FakeGateway


@pytest.fixture
def analysis_factory():
    return make_analysis


@pytest.fixture
def stub_analyzer():
    return StubAnalyzer(make_analysis())


@pytest.fixture
def analyzer_factory():
    return StubAnalyzer


@pytest.fixture
def builder_factory():
    return StubPageBuilder
