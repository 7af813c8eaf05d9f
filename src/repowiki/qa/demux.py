"""Incremental splitting of a token stream into reasoning and answer text.

The model wraps reasoning steps in ``<think>...</think>`` regions. Fragments
arrive in arbitrary sizes, so a sentinel tag may be split across any number
of fragments. The demultiplexer keeps at most ``len(tag) - 1`` characters of
unclassified text (the longest buffer suffix that is a strict prefix of the
tag it is currently looking for) and carries them into the next fragment.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator

from repowiki.constants.qa import STREAM_FAILURE_MESSAGE, THINK_CLOSE_TAG, THINK_OPEN_TAG
from repowiki.generation.events import (
    DoneEvent,
    ErrorEvent,
    QADeltaEvent,
    QAEvent,
    QAThinkingEvent,
)

logger = logging.getLogger(__name__)


def partial_tag_suffix_len(text: str, tag: str) -> int:
    """Length of the longest suffix of text that is a strict prefix of tag.

    >>> partial_tag_suffix_len("hello <thi", "<think>")
    4
    >>> partial_tag_suffix_len("hello", "<think>")
    0
    """
    for length in range(min(len(text), len(tag) - 1), 0, -1):
        if text.endswith(tag[:length]):
            return length
    return 0


class ThinkTagDemultiplexer:
    """Two-state machine separating think regions from answer text.

    State OUTSIDE forwards text to the answer stream as it arrives. State
    INSIDE accumulates text and emits it as one reasoning step when the
    region closes. The very first answer emission has its leading
    whitespace removed and is withheld entirely if nothing remains.
    """

    def __init__(self, open_tag: str = THINK_OPEN_TAG, close_tag: str = THINK_CLOSE_TAG) -> None:
        self.open_tag = open_tag
        self.close_tag = close_tag
        self.inside = False
        self._pending = ""
        self._reasoning = ""
        self._answer_started = False

    @property
    def pending(self) -> str:
        """Text held back because it may start a split sentinel tag."""
        return self._pending

    def _answer(self, content: str, out: list[QAEvent]) -> None:
        if not self._answer_started:
            content = content.lstrip()
            if not content:
                return
            self._answer_started = True
        out.append(QADeltaEvent(content=content))

    def _close_region(self, out: list[QAEvent]) -> None:
        step = self._reasoning.strip()
        if step:
            out.append(QAThinkingEvent(content=step))
        self._reasoning = ""

    def feed(self, chunk: str) -> list[QAEvent]:
        """Consume one fragment and return the events it completes."""
        out: list[QAEvent] = []
        remaining = self._pending + chunk
        self._pending = ""

        while remaining:
            if self.inside:
                close_idx = remaining.find(self.close_tag)
                if close_idx != -1:
                    self._reasoning += remaining[:close_idx]
                    self._close_region(out)
                    self.inside = False
                    remaining = remaining[close_idx + len(self.close_tag):]
                    continue

                partial = partial_tag_suffix_len(remaining, self.close_tag)
                if partial:
                    self._reasoning += remaining[:-partial]
                    self._pending = remaining[-partial:]
                else:
                    self._reasoning += remaining
                remaining = ""
            else:
                open_idx = remaining.find(self.open_tag)
                if open_idx != -1:
                    before = remaining[:open_idx]
                    if before.strip():
                        self._answer(before, out)
                    self.inside = True
                    remaining = remaining[open_idx + len(self.open_tag):]
                    continue

                partial = partial_tag_suffix_len(remaining, self.open_tag)
                if partial:
                    safe = remaining[:-partial]
                    self._pending = remaining[-partial:]
                else:
                    safe = remaining
                if safe:
                    self._answer(safe, out)
                remaining = ""

        return out

    def finish(self) -> list[QAEvent]:
        """Flush held-back text at end of input.

        An unresolved partial tag is treated as literal content of whichever
        stream is active. A region left open is emitted as a final step.
        """
        out: list[QAEvent] = []
        if self._pending:
            if self.inside:
                self._reasoning += self._pending
            else:
                self._answer(self._pending, out)
            self._pending = ""
        self._close_region(out)
        return out


async def demultiplex(
    fragments: AsyncIterable[str],
    demux: ThinkTagDemultiplexer | None = None,
) -> AsyncIterator[QAEvent]:
    """Turn a raw fragment stream into Q&A events ending in done or error.

    A failure while reading fragments is logged and reported as a terminal
    error event; events produced before it are kept.
    """
    demux = demux or ThinkTagDemultiplexer()
    try:
        async for fragment in fragments:
            for event in demux.feed(fragment):
                yield event
    except Exception as e:
        logger.error(f"Answer stream interrupted: {e}", exc_info=e)
        yield ErrorEvent(message=STREAM_FAILURE_MESSAGE)
        return

    for event in demux.finish():
        yield event
    yield DoneEvent()
