"""Q&A request schemas."""

from typing import Literal

from pydantic import Field

from repowiki.generation.schemas import WireModel


class HistoryTurn(WireModel):
    """One earlier message of the conversation."""

    role: Literal["user", "assistant"]
    content: str


class QARequest(WireModel):
    """Request for a streamed answer grounded in generated wiki content."""

    flow: Literal["qa"] = "qa"
    question: str = Field(..., min_length=1, description="The question to answer")
    wiki_context: str = Field(..., min_length=1, description="Generated wiki text to answer from")
    history: list[HistoryTurn] = Field(
        default_factory=list,
        description="Completed turns of the conversation, oldest first",
    )
