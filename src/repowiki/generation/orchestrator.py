"""Generation orchestrator for the wiki pipeline.

A run has two phases:

1. Analysis - fetch the repository tree and key files, produce the
   subsystem manifest
2. Pages - build one page per subsystem, concurrently

The streaming variant reports progress as an ordered sequence of events:
``status``* then one ``analysis``, then ``page``/``status`` events in
completion order, then exactly one ``done`` or ``error``. The channel is
closed on every exit path.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import suppress
from dataclasses import dataclass, field

from repowiki.constants.generation import (
    GENERIC_FAILURE_MESSAGE,
    NOT_FOUND_MESSAGE,
    PARALLEL_PAGE_LIMIT,
)
from repowiki.errors import SourceUnavailable
from repowiki.generation.analyzer import RepoAnalyzer
from repowiki.generation.channel import EventChannel
from repowiki.generation.citations import repo_url
from repowiki.generation.events import (
    AnalysisEvent,
    DoneEvent,
    ErrorEvent,
    GenerationEvent,
    PageErrorEvent,
    PageEvent,
    StatusEvent,
)
from repowiki.generation.page_builder import PageBuilder
from repowiki.generation.schemas import (
    AnalyzedSubsystem,
    SubsystemPage,
    SubsystemSummary,
    WikiStructure,
)

logger = logging.getLogger(__name__)


def failure_message(error: BaseException) -> str:
    """User-facing message for a failed run."""
    if isinstance(error, SourceUnavailable):
        return NOT_FOUND_MESSAGE
    return GENERIC_FAILURE_MESSAGE


@dataclass
class RunContext:
    """State owned by one streaming generation run.

    Attributes:
        owner: Repository owner.
        name: Repository name.
        channel: Channel the run emits into.
        terminated: Set once done or error has been emitted.
    """

    owner: str
    name: str
    channel: EventChannel[GenerationEvent] = field(default_factory=EventChannel)
    terminated: bool = False

    def emit(self, event: GenerationEvent) -> None:
        if self.terminated:
            logger.warning(f"Ignoring {event.type} event after run terminated")
            return
        self.channel.emit(event)

    def finish(self, event: DoneEvent | ErrorEvent) -> None:
        self.emit(event)
        self.terminated = True


class GenerationOrchestrator:
    """Orchestrates analysis and page builds for one repository at a time."""

    def __init__(
        self,
        analyzer: RepoAnalyzer,
        page_builder: PageBuilder,
        parallel_limit: int = PARALLEL_PAGE_LIMIT,
        partial_results: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            analyzer: Produces the subsystem manifest.
            page_builder: Builds one page per subsystem.
            parallel_limit: Maximum concurrent page builds.
            partial_results: Report failed pages as page-error events and
                still finish with done, instead of failing the whole run.
        """
        self.analyzer = analyzer
        self.page_builder = page_builder
        self.parallel_limit = parallel_limit
        self.partial_results = partial_results

    async def run(self, ctx: RunContext) -> None:
        """Drive one run to completion, emitting into ctx.channel.

        Never raises for pipeline failures; they become one error event.
        The channel is always closed when this returns or is cancelled.
        """
        logger.info(f"Starting wiki generation for {ctx.owner}/{ctx.name}")
        try:
            await self._execute(ctx)
        except Exception as e:
            logger.exception(f"Wiki generation failed for {ctx.owner}/{ctx.name}: {e}")
            ctx.finish(ErrorEvent(message=failure_message(e)))
        finally:
            ctx.channel.close()

    async def _execute(self, ctx: RunContext) -> None:
        ctx.emit(StatusEvent(message="Fetching repository structure..."))

        analysis = await self.analyzer.analyze(ctx.owner, ctx.name)

        ctx.emit(
            AnalysisEvent(
                repo_name=analysis.repo_name,
                description=analysis.description,
                subsystems=[
                    SubsystemSummary(id=s.id, name=s.name, description=s.description)
                    for s in analysis.subsystems
                ],
            )
        )
        ctx.emit(
            StatusEvent(
                message=f"Found {len(analysis.subsystems)} subsystems. Generating pages..."
            )
        )

        semaphore = asyncio.Semaphore(self.parallel_limit)

        async def build_and_emit(subsystem: AnalyzedSubsystem) -> SubsystemPage:
            async with semaphore:
                ctx.emit(StatusEvent(message=f"Writing: {subsystem.name}..."))
                page = await self.page_builder.build(ctx.owner, ctx.name, subsystem)
            ctx.emit(PageEvent(subsystem=page))
            return page

        results = await asyncio.gather(
            *(build_and_emit(s) for s in analysis.subsystems),
            return_exceptions=True,
        )
        failures = [
            (subsystem, result)
            for subsystem, result in zip(analysis.subsystems, results)
            if isinstance(result, Exception)
        ]

        for subsystem, error in failures:
            logger.error(
                f"Page build failed for {ctx.owner}/{ctx.name} subsystem {subsystem.id}: {error}",
                exc_info=error,
            )

        if failures and not self.partial_results:
            ctx.finish(ErrorEvent(message=GENERIC_FAILURE_MESSAGE))
            return

        for subsystem, _ in failures:
            ctx.emit(PageErrorEvent(id=subsystem.id, message=GENERIC_FAILURE_MESSAGE))

        logger.info(
            f"Finished wiki generation for {ctx.owner}/{ctx.name}: "
            f"{len(results) - len(failures)}/{len(results)} pages"
        )
        ctx.finish(DoneEvent())

    async def stream(self, owner: str, name: str) -> AsyncIterator[GenerationEvent]:
        """Run generation in a background task and yield its events.

        Closing the iterator early (consumer disconnect) stops emission and
        cancels the in-flight run.
        """
        ctx = RunContext(owner=owner, name=name)
        task = asyncio.create_task(self.run(ctx))
        try:
            async for event in ctx.channel:
                yield event
        finally:
            ctx.channel.disconnect()
            if not task.done():
                logger.info(f"Consumer disconnected, cancelling run for {owner}/{name}")
                task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def generate(self, owner: str, name: str) -> WikiStructure:
        """Build the whole wiki and return it once every page is done.

        Raises:
            SourceUnavailable: If the repository cannot be read.
            AnalysisFailed: If the manifest could not be generated.
            PageBuildFailed: On the first failed page (unless partial results
                are enabled, in which case failed pages are left out).
        """
        analysis = await self.analyzer.analyze(owner, name)
        semaphore = asyncio.Semaphore(self.parallel_limit)

        async def build(subsystem: AnalyzedSubsystem) -> SubsystemPage:
            async with semaphore:
                return await self.page_builder.build(owner, name, subsystem)

        tasks = [asyncio.create_task(build(s)) for s in analysis.subsystems]
        if self.partial_results:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            pages = []
            for subsystem, result in zip(analysis.subsystems, results):
                if isinstance(result, Exception):
                    logger.error(f"Skipping page {subsystem.id} for {owner}/{name}: {result}")
                else:
                    pages.append(result)
        else:
            try:
                pages = list(await asyncio.gather(*tasks))
            except Exception:
                for task in tasks:
                    task.cancel()
                raise

        return WikiStructure(
            repo_name=analysis.repo_name,
            repo_url=repo_url(owner, name),
            description=analysis.description,
            subsystems=pages,
        )
