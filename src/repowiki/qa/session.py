"""Chat session state for Q&A conversations."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Literal

from repowiki.generation.events import (
    DoneEvent,
    ErrorEvent,
    QADeltaEvent,
    QAEvent,
    QAThinkingEvent,
)
from repowiki.qa.schemas import HistoryTurn, QARequest
from repowiki.qa.service import QAService

logger = logging.getLogger(__name__)


@dataclass
class ChatTurn:
    """One message of a conversation.

    Only the in-flight assistant turn has streaming=True; its reasoning
    steps and content are frozen once streaming ends. A question that was
    interrupted by a newer one is marked cancelled together with its answer.
    """

    role: Literal["user", "assistant"]
    content: str = ""
    reasoning: list[str] = field(default_factory=list)
    streaming: bool = False
    cancelled: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class ChatSession:
    """A conversation about one wiki, with at most one question in flight."""

    def __init__(self, service: QAService, wiki_context: str) -> None:
        self.service = service
        self.wiki_context = wiki_context
        self.turns: list[ChatTurn] = []
        self.error: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._in_flight: tuple[ChatTurn, ChatTurn] | None = None

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def history(self) -> list[HistoryTurn]:
        """Completed turns, oldest first. Cancelled exchanges are left out."""
        return [
            HistoryTurn(role=turn.role, content=turn.content)
            for turn in self.turns
            if not turn.streaming and not turn.cancelled
        ]

    def apply(self, turn: ChatTurn, event: QAEvent) -> None:
        """Apply one stream event to the in-flight assistant turn."""
        if not turn.streaming:
            logger.debug(f"Ignoring {event.type} event for completed turn {turn.id}")
            return

        if isinstance(event, QAThinkingEvent):
            turn.reasoning.append(event.content)
        elif isinstance(event, QADeltaEvent):
            turn.content += event.content
        elif isinstance(event, DoneEvent):
            turn.streaming = False
        elif isinstance(event, ErrorEvent):
            turn.content = event.message
            turn.streaming = False

    async def _consume(self, request: QARequest, turn: ChatTurn) -> None:
        try:
            async for event in self.service.answer_stream(request):
                self.apply(turn, event)
        except Exception as e:
            logger.exception(f"Q&A stream failed: {e}")
            self.error = str(e) or "Something went wrong"
        finally:
            turn.streaming = False

    async def start(self, question: str) -> ChatTurn | None:
        """Begin answering question in the background.

        Any question already in flight is cancelled first. Blank questions
        are ignored.

        Returns:
            The streaming assistant turn, or None if nothing was started.
        """
        if not question.strip():
            return None

        await self.cancel()

        request = QARequest(
            question=question,
            wiki_context=self.wiki_context,
            history=self.history(),
        )
        user = ChatTurn(role="user", content=question)
        assistant = ChatTurn(role="assistant", streaming=True)
        self.turns.extend((user, assistant))
        self._in_flight = (user, assistant)
        self.error = None
        self._task = asyncio.create_task(self._consume(request, assistant))
        return assistant

    async def ask(self, question: str) -> ChatTurn | None:
        """Answer question and wait until the answer is complete or cancelled."""
        turn = await self.start(question)
        task = self._task
        if turn is None or task is None:
            return None
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        return turn

    async def cancel(self) -> None:
        """Cancel the in-flight question, if any."""
        task = self._task
        if task is not None and not task.done():
            for turn in self._in_flight or ():
                turn.cancelled = True
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._in_flight = None

    async def clear(self) -> None:
        """Cancel any in-flight question and forget the conversation."""
        await self.cancel()
        self.turns.clear()
        self.error = None
