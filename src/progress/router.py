"""Generation progress routes: SSE reader and update writer."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import StreamingResponse

from src.core.config import get_settings
from src.core.errors import ValidationError
from src.core.logger import get_logger
from src.core.metrics import record_progress_stream_opened
from src.progress.store import GenerationSessionStore, apply_progress_update, get_session_store
from src.progress.stream import progress_events
from src.schemas.progress import ProgressUpdateRequest, ProgressUpdateResponse


router = APIRouter(prefix="/generation-status", tags=["progress"])
logger = get_logger("contentos.progress")


@router.get("")
async def stream_generation_status(
    request: Request,
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    session_store: GenerationSessionStore = Depends(get_session_store),
) -> StreamingResponse:
    resolved = (session_id or "").strip()
    if not resolved:
        raise ValidationError("Session ID required")

    record_progress_stream_opened()
    logger.info("progress_stream_opened", session_id=resolved)
    events = progress_events(
        resolved,
        store=session_store,
        interval_seconds=get_settings().progress_poll_interval_seconds,
        is_disconnected=request.is_disconnected,
    )
    response = StreamingResponse(events, media_type="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response


@router.post("", response_model=ProgressUpdateResponse, response_model_exclude_none=True)
async def update_generation_status(
    payload: ProgressUpdateRequest,
    session_store: GenerationSessionStore = Depends(get_session_store),
) -> ProgressUpdateResponse:
    session = await run_in_threadpool(
        lambda: apply_progress_update(
            session_store,
            session_id=payload.session_id or "",
            update_type=payload.type or "",
            total_posts=payload.total_posts,
            count=payload.count,
            message=payload.message,
        )
    )
    if session is None:
        return ProgressUpdateResponse()
    return ProgressUpdateResponse(status=session.status, progress=session.progress_percent())
