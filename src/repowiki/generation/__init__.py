"""Wiki generation: analysis, page building and run orchestration."""

from repowiki.generation.analyzer import RepoAnalyzer
from repowiki.generation.orchestrator import GenerationOrchestrator, RunContext
from repowiki.generation.page_builder import PageBuilder
from repowiki.generation.run import GenerationRun, ProtocolViolation

__all__ = [
    "GenerationOrchestrator",
    "GenerationRun",
    "PageBuilder",
    "ProtocolViolation",
    "RepoAnalyzer",
    "RunContext",
]
