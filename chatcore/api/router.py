"""Chat API router.

Identity comes from the ``X-User-Id`` header set by the upstream gateway;
``X-Project-Id`` optionally scopes retrieval.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from chatcore.api.dependencies import CallerContext, get_caller, get_services
from chatcore.api.schemas import ChatRequest, ErrorResponse, FlagReviewRequest, HealthResponse
from chatcore.models.domain import LLMResponse
from chatcore.services.chat_service import ChatInput, PreparedChat, history_from
from chatcore.services.container import ChatServices
from chatcore.services.exceptions import (
    INVALID_REQUEST_MESSAGE,
    PROVIDERS_UNAVAILABLE_MESSAGE,
    AggregateProviderFailure,
    ContentBlockedError,
    ValidationError,
)
from chatcore.storage.records import FlagRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Chat"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


@router.post(
    "/chat",
    response_model=LLMResponse,
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def chat(
    request: ChatRequest,
    caller: CallerContext = Depends(get_caller),
    services: ChatServices = Depends(get_services),
) -> Response | LLMResponse:
    """Answer one chat message.

    With ``stream=true`` the answer is sent as ``text/event-stream``, one
    JSON object per ``data:`` line:

    - ``{"chunk": "partial text"}``
    - ``{"done": true, "model": …, "provider": …, "tokenCount": …, "sources": […]}``
    - ``{"error": "message"}``
    """
    chat_input = ChatInput(
        message=request.message,
        user_id=caller.user_id,
        history=history_from(request.conversation_history),
        task_type=request.task_type,
        heightened_validation=request.use_heightened_validation,
        project_id=caller.project_id,
        message_id=request.message_id,
    )
    prepared = await services.chat.prepare(chat_input, streaming=request.stream)

    if request.stream:
        return StreamingResponse(
            _event_stream(services, prepared),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
    return await services.chat.complete(prepared)


async def _event_stream(services: ChatServices, prepared: PreparedChat) -> AsyncIterator[str]:
    async for event in services.chat.stream(prepared):
        yield event.to_sse()


# ------------------------------------------------------------------
# Moderation review
# ------------------------------------------------------------------


@router.post("/flags/{flag_id}/review", response_model=FlagRecord, tags=["Moderation"])
async def review_flag(
    flag_id: str,
    review: FlagReviewRequest,
    caller: CallerContext = Depends(get_caller),
    services: ChatServices = Depends(get_services),
) -> FlagRecord:
    """Mark a moderation flag as reviewed by the calling operator.

    Operator authorisation is enforced by the upstream gateway.
    """
    record = await services.store.review_flag(flag_id, caller.user_id, review.decision)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Flag not found: {flag_id}")
    logger.info("Flag %s reviewed by %s: %s", flag_id, caller.user_id, review.decision.value)
    return record


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(services: ChatServices = Depends(get_services)) -> HealthResponse:
    """Health check — returns registered provider IDs in default order."""
    return HealthResponse(status="ok", providers=services.provider_ids)


# ------------------------------------------------------------------
# Error mapping
# ------------------------------------------------------------------


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _content_blocked(request: Request, exc: ContentBlockedError) -> JSONResponse:
    return _error(400, "Content violation", str(exc))


async def _invalid_request(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("Request rejected by provider: %s", exc)
    return _error(400, "Invalid request", INVALID_REQUEST_MESSAGE)


async def _providers_unavailable(request: Request, exc: AggregateProviderFailure) -> JSONResponse:
    logger.error("No provider could answer: %s (attempted %s)", exc, exc.attempted)
    return _error(503, "Service unavailable", PROVIDERS_UNAVAILABLE_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContentBlockedError, _content_blocked)
    app.add_exception_handler(ValidationError, _invalid_request)
    app.add_exception_handler(AggregateProviderFailure, _providers_unavailable)
