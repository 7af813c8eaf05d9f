"""Stream event protocol and Server-Sent Events framing.

Every event is one JSON object with a ``type`` discriminator, framed as
``data: <json>\\n\\n``. Generation runs emit ``status``, ``analysis``,
``page``, ``page-error``, ``done`` and ``error``; Q&A emits ``qa-thinking``,
``qa-delta``, ``done`` and ``error``.
"""

import json
import logging
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError

from repowiki.generation.schemas import SubsystemPage, SubsystemSummary, WireModel

logger = logging.getLogger(__name__)


class StatusEvent(WireModel):
    """Advisory phase change."""

    type: Literal["status"] = "status"
    message: str


class AnalysisEvent(WireModel):
    """Subsystem manifest; ids are valid page keys from here on."""

    type: Literal["analysis"] = "analysis"
    repo_name: str
    description: str
    subsystems: list[SubsystemSummary]


class PageEvent(WireModel):
    """One finished subsystem page."""

    type: Literal["page"] = "page"
    subsystem: SubsystemPage


class PageErrorEvent(WireModel):
    """One subsystem failed while the run continues (partial-results mode)."""

    type: Literal["page-error"] = "page-error"
    id: str
    message: str


class DoneEvent(WireModel):
    """Terminal success."""

    type: Literal["done"] = "done"


class ErrorEvent(WireModel):
    """Terminal failure."""

    type: Literal["error"] = "error"
    message: str


class QAThinkingEvent(WireModel):
    """One completed reasoning step."""

    type: Literal["qa-thinking"] = "qa-thinking"
    content: str


class QADeltaEvent(WireModel):
    """Incremental answer text."""

    type: Literal["qa-delta"] = "qa-delta"
    content: str


GenerationEvent = Union[StatusEvent, AnalysisEvent, PageEvent, PageErrorEvent, DoneEvent, ErrorEvent]
QAEvent = Union[QAThinkingEvent, QADeltaEvent, DoneEvent, ErrorEvent]
StreamEvent = Annotated[
    Union[
        StatusEvent,
        AnalysisEvent,
        PageEvent,
        PageErrorEvent,
        DoneEvent,
        ErrorEvent,
        QAThinkingEvent,
        QADeltaEvent,
    ],
    Field(discriminator="type"),
]

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})

_event_adapter: TypeAdapter[Any] = TypeAdapter(StreamEvent)


def is_terminal(event: WireModel) -> bool:
    """True for events after which nothing else may follow."""
    return getattr(event, "type", None) in TERMINAL_EVENT_TYPES


def to_payload(event: WireModel) -> dict[str, Any]:
    """Wire representation of an event (camelCase keys)."""
    return event.model_dump(mode="json", by_alias=True)


def format_sse(event: WireModel) -> str:
    """Frame an event as one SSE message."""
    return f"data: {json.dumps(to_payload(event))}\n\n"


def parse_event(payload: dict[str, Any]) -> Any:
    """Validate a wire payload into its event model.

    Raises:
        pydantic.ValidationError: If the payload is not a known event.
    """
    return _event_adapter.validate_python(payload)


def parse_sse(text: str) -> list[dict[str, Any]]:
    """Split an SSE body into event payloads.

    Blocks are separated by blank lines; only ``data: `` lines are read and
    malformed JSON is skipped.
    """
    payloads = []
    for block in text.split("\n\n"):
        block = block.strip()
        if not block.startswith("data: "):
            continue
        try:
            payloads.append(json.loads(block[len("data: "):]))
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed SSE block: {block[:80]!r}")
    return payloads


def parse_sse_events(text: str) -> list[Any]:
    """Parse an SSE body into event models, skipping unknown payloads."""
    events = []
    for payload in parse_sse(text):
        try:
            events.append(parse_event(payload))
        except ValidationError:
            logger.debug(f"Skipping unknown event payload: {payload!r}")
    return events
