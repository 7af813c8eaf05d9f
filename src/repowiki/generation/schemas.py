"""Data models for wiki generation.

Models serialize with camelCase keys (``repoName``, ``relevantFiles``) because
that is the shape of the wire protocol and of the structured model output.
Python code uses the snake_case attribute names.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from repowiki.constants.generation import (
    MAX_RELEVANT_FILES,
    MAX_SUBSYSTEMS,
    MIN_SUBSYSTEMS,
)

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Turn arbitrary text into a URL-safe kebab-case identifier."""
    slug = _NON_SLUG.sub("-", value.lower()).strip("-")
    return slug or "subsystem"


class WireModel(BaseModel):
    """Base model for everything that crosses the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Analyzer output
# =============================================================================


class AnalyzedSubsystem(WireModel):
    """A feature area of the repository with its candidate source files."""

    id: str = Field(..., description="URL-safe kebab-case identifier")
    name: str = Field(..., description="Human-readable subsystem name")
    description: str = Field(
        ...,
        description="One-sentence description of what this subsystem does for the user",
    )
    relevant_files: list[str] = Field(
        default_factory=list,
        description=f"File paths in the repo most relevant to this subsystem (max {MAX_RELEVANT_FILES})",
    )

    @field_validator("id")
    @classmethod
    def _slug_id(cls, value: str) -> str:
        return slugify(value)

    @field_validator("relevant_files")
    @classmethod
    def _cap_files(cls, value: list[str]) -> list[str]:
        return value[:MAX_RELEVANT_FILES]


class RepoAnalysis(WireModel):
    """Subsystem manifest for a repository."""

    repo_name: str
    description: str = Field(..., description="One-sentence description of the repository")
    subsystems: list[AnalyzedSubsystem] = Field(
        ...,
        min_length=MIN_SUBSYSTEMS,
        max_length=MAX_SUBSYSTEMS,
        description=(
            f"{MIN_SUBSYSTEMS}-{MAX_SUBSYSTEMS} user-facing subsystems, "
            "NOT technical layers like 'utils' or 'config'"
        ),
    )

    @model_validator(mode="after")
    def _unique_ids(self) -> "RepoAnalysis":
        seen: set[str] = set()
        for subsystem in self.subsystems:
            candidate = subsystem.id
            suffix = 2
            while candidate in seen:
                candidate = f"{subsystem.id}-{suffix}"
                suffix += 1
            subsystem.id = candidate
            seen.add(candidate)
        return self


class SubsystemSummary(WireModel):
    """Manifest entry announced to the client before pages arrive."""

    id: str
    name: str
    description: str


# =============================================================================
# Page builder output
# =============================================================================


class CitationDraft(WireModel):
    """Citation as reported by the model, with 0 meaning unknown."""

    file: str = Field(..., description="File path relative to repo root")
    start_line: int = Field(0, description="Starting line number, use 0 if unknown")
    end_line: int = Field(0, description="Ending line number, use 0 if unknown")


class PageDraft(WireModel):
    """Structured page content as produced by the model."""

    content: str = Field(
        ...,
        description=(
            "Wiki page content as HTML. Use <p>, <h2>, <h3>, <ul>, <ol>, <code>, <pre> tags. "
            "Be thorough and detailed."
        ),
    )
    citations: list[CitationDraft] = Field(default_factory=list)
    entry_points: list[str] = Field(
        default_factory=list,
        description="Key entry points like API routes, CLI commands, exported functions",
    )


class Citation(WireModel):
    """Source reference on a finished page."""

    file: str
    lines: tuple[int, int] | None = None
    url: str | None = None

    @field_validator("lines")
    @classmethod
    def _ordered_range(cls, value: tuple[int, int] | None) -> tuple[int, int] | None:
        if value is not None:
            start, end = value
            if start < 1 or end < start:
                raise ValueError(f"invalid line range {start}-{end}")
        return value


class SubsystemPage(WireModel):
    """A finished documentation page for one subsystem."""

    id: str
    name: str
    description: str
    content: str
    citations: list[Citation] = Field(default_factory=list)
    entry_points: list[str] = Field(default_factory=list)


class WikiStructure(WireModel):
    """Complete wiki returned by the non-streaming variant."""

    repo_name: str
    repo_url: str
    description: str
    subsystems: list[SubsystemPage] = Field(default_factory=list)


# =============================================================================
# Requests
# =============================================================================


class GenerateWikiRequest(WireModel):
    """Request body for wiki generation."""

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
