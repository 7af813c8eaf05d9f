"""Consumer-side aggregate of a generation run.

GenerationRun applies protocol events one at a time, in arrival order, and
rejects sequences that break the protocol.
"""

from dataclasses import dataclass, field

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
from repowiki.generation.schemas import SubsystemPage, WikiStructure


class ProtocolViolation(Exception):
    """Raised when an event arrives out of protocol order."""

    pass


@dataclass
class GenerationRun:
    """Accumulated state of one run for one repository."""

    owner: str
    name: str
    analysis: AnalysisEvent | None = None
    pages: dict[str, SubsystemPage] = field(default_factory=dict)
    page_errors: dict[str, str] = field(default_factory=dict)
    status: str = ""
    done: bool = False
    error: str | None = None

    @property
    def terminal(self) -> bool:
        return self.done or self.error is not None

    @property
    def subsystem_ids(self) -> list[str]:
        if self.analysis is None:
            return []
        return [s.id for s in self.analysis.subsystems]

    def apply(self, event: GenerationEvent) -> None:
        """Fold one event into the run.

        Raises:
            ProtocolViolation: If the event is not allowed in the current state.
        """
        if self.terminal:
            raise ProtocolViolation(f"{event.type} event after run terminated")

        if isinstance(event, StatusEvent):
            self.status = event.message
        elif isinstance(event, AnalysisEvent):
            if self.analysis is not None:
                raise ProtocolViolation("second analysis event")
            self.analysis = event
        elif isinstance(event, (PageEvent, PageErrorEvent)):
            page_id = event.subsystem.id if isinstance(event, PageEvent) else event.id
            if self.analysis is None:
                raise ProtocolViolation(f"{event.type} event before analysis")
            if page_id not in self.subsystem_ids:
                raise ProtocolViolation(f"{event.type} event for undeclared subsystem {page_id!r}")
            if page_id in self.pages or page_id in self.page_errors:
                raise ProtocolViolation(f"duplicate {event.type} event for {page_id!r}")
            if isinstance(event, PageEvent):
                self.pages[page_id] = event.subsystem
            else:
                self.page_errors[page_id] = event.message
        elif isinstance(event, DoneEvent):
            if self.analysis is None:
                raise ProtocolViolation("done event before analysis")
            self.done = True
        elif isinstance(event, ErrorEvent):
            self.error = event.message
        else:
            raise ProtocolViolation(f"unexpected event {event!r}")

    def to_wiki(self) -> WikiStructure:
        """Assemble the pages received so far, in manifest order."""
        if self.analysis is None:
            raise ProtocolViolation("no analysis received")
        return WikiStructure(
            repo_name=self.analysis.repo_name,
            repo_url=repo_url(self.owner, self.name),
            description=self.analysis.description,
            subsystems=[self.pages[i] for i in self.subsystem_ids if i in self.pages],
        )
