"""Wiki generation and Q&A endpoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from repowiki.api.deps import get_orchestrator, get_qa_service
from repowiki.constants.generation import GENERIC_FAILURE_MESSAGE, NOT_FOUND_MESSAGE
from repowiki.errors import SourceUnavailable
from repowiki.generation.events import GenerationEvent, format_sse
from repowiki.generation.orchestrator import GenerationOrchestrator
from repowiki.generation.schemas import GenerateWikiRequest
from repowiki.qa.schemas import QARequest
from repowiki.qa.service import QAService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wiki", tags=["wiki"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _sse(events: AsyncIterator[GenerationEvent]) -> AsyncIterator[str]:
    """Frame generation events, closing the run if the client goes away."""
    async with aclosing(events) as stream:
        async for event in stream:
            yield format_sse(event)


@router.post("/generate")
async def generate(
    request: Request,
    stream: bool = True,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    qa_service: QAService = Depends(get_qa_service),
) -> Response:
    """Generate a wiki, or answer a question about one.

    The body is discriminated by ``flow``: ``"qa"`` streams an answer,
    anything else (or no flow) generates the wiki for ``owner``/``repo``.
    Generation streams Server-Sent Events unless ``?stream=false``, in which
    case the finished wiki is returned as JSON.
    """
    try:
        body = await request.json()
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON")

    if not isinstance(body, dict):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")

    flow = body.get("flow")
    if flow == "qa":
        try:
            qa_request = QARequest.model_validate(body)
        except ValidationError:
            return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")
        return StreamingResponse(
            qa_service.ask_stream(qa_request),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    if flow not in (None, "wiki"):
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")

    try:
        wiki_request = GenerateWikiRequest.model_validate(body)
    except ValidationError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")

    owner, repo = wiki_request.owner, wiki_request.repo

    if stream:
        return StreamingResponse(
            _sse(orchestrator.stream(owner, repo)),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    try:
        wiki = await orchestrator.generate(owner, repo)
    except SourceUnavailable as e:
        logger.warning(f"Repository {owner}/{repo} unavailable: {e}")
        return _error(status.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)
    except Exception as e:
        logger.exception(f"Wiki generation failed for {owner}/{repo}: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_FAILURE_MESSAGE)

    return JSONResponse(content=wiki.model_dump(mode="json", by_alias=True))
