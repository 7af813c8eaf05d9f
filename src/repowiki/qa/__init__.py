"""Question answering over generated wiki content."""

from repowiki.qa.demux import ThinkTagDemultiplexer, demultiplex
from repowiki.qa.schemas import HistoryTurn, QARequest
from repowiki.qa.service import QAService
from repowiki.qa.session import ChatSession, ChatTurn

__all__ = [
    "ChatSession",
    "ChatTurn",
    "HistoryTurn",
    "QARequest",
    "QAService",
    "ThinkTagDemultiplexer",
    "demultiplex",
]
