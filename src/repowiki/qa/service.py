"""Q&A service: streamed answers grounded in generated wiki content."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator

from repowiki.constants.llm import DEFAULT_TEMPERATURE
from repowiki.constants.qa import INITIAL_THINKING_STEP
from repowiki.errors import TransportFailed
from repowiki.generation.events import QAEvent, QAThinkingEvent, format_sse
from repowiki.generation.prompts import QA_SYSTEM_PROMPT, WIKI_CONTEXT_TEMPLATE
from repowiki.llm.client import LLMClient, LLMError
from repowiki.qa.demux import demultiplex
from repowiki.qa.schemas import QARequest

logger = logging.getLogger(__name__)


def build_messages(request: QARequest) -> list[dict[str, str]]:
    """Conversation sent to the model: wiki context, history, then the question."""
    messages = [
        {"role": "user", "content": WIKI_CONTEXT_TEMPLATE.render(wiki_context=request.wiki_context)}
    ]
    messages.extend({"role": turn.role, "content": turn.content} for turn in request.history)
    messages.append({"role": "user", "content": request.question})
    return messages


class QAService:
    """Answers questions about a generated wiki."""

    def __init__(self, llm: LLMClient, temperature: float = DEFAULT_TEMPERATURE) -> None:
        """Initialize Q&A service.

        Args:
            llm: LLM client used for streaming answers.
            temperature: Sampling temperature for answers.
        """
        self._llm = llm
        self._temperature = temperature

    async def _fragments(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        try:
            async for fragment in self._llm.generate_stream(
                system_prompt=QA_SYSTEM_PROMPT,
                messages=messages,
                temperature=self._temperature,
            ):
                yield fragment
        except LLMError as e:
            raise TransportFailed(f"LLM stream failed: {e}") from e

    async def answer_stream(self, request: QARequest) -> AsyncGenerator[QAEvent, None]:
        """Stream the answer as Q&A events.

        Yields one initial reasoning step, then reasoning and answer events as
        the model produces them, then exactly one done or error event.
        """
        logger.info(
            f"Answering question ({len(request.question)} chars, "
            f"{len(request.history)} history turns)"
        )
        yield QAThinkingEvent(content=INITIAL_THINKING_STEP)
        async for event in demultiplex(self._fragments(build_messages(request))):
            yield event

    async def ask_stream(self, request: QARequest) -> AsyncGenerator[str, None]:
        """Stream the answer as SSE-formatted strings."""
        async for event in self.answer_stream(request):
            yield format_sse(event)
