"""Server-sent-events rendering of a generation session."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from starlette.concurrency import run_in_threadpool

from src.core.logger import get_logger
from src.progress.store import SESSION_STATUS_COMPLETED, GenerationSession, GenerationSessionStore


logger = get_logger("contentos.progress_stream")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, separators=(',', ':'))}\n\n"


def progress_payload(session: GenerationSession) -> Dict[str, Any]:
    return {
        "type": "progress",
        "sessionId": session.session_id,
        "status": session.status,
        "totalPosts": session.total_posts,
        "generated": session.generated,
        "translated": session.translated,
        "progress": session.progress_percent(),
        "message": session.message,
        "timestamp": _timestamp(),
    }


def complete_payload(session: GenerationSession) -> Dict[str, Any]:
    if session.status == SESSION_STATUS_COMPLETED:
        message = f"Successfully generated {session.total_posts} posts!"
    else:
        message = "Generation failed. Please try again."
    return {
        "type": "complete",
        "sessionId": session.session_id,
        "status": session.status,
        "message": message,
        "timestamp": _timestamp(),
    }


async def progress_events(
    session_id: str,
    *,
    store: GenerationSessionStore,
    interval_seconds: float,
    is_disconnected: Callable[[], Awaitable[bool]],
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one session until it reaches a terminal status.

    A terminal session produces a last `progress` frame, then `complete`,
    and is removed from the store. Nothing is written once the client has
    gone away.
    """
    yield sse_frame({"type": "connected", "sessionId": session_id, "timestamp": _timestamp()})

    while True:
        await sleep(interval_seconds)
        if await is_disconnected():
            logger.info("progress_stream_client_disconnected", session_id=session_id)
            return

        session: Optional[GenerationSession] = await run_in_threadpool(store.get, session_id)
        if session is None:
            yield sse_frame(
                {
                    "type": "waiting",
                    "sessionId": session_id,
                    "message": "Preparing to generate content...",
                    "timestamp": _timestamp(),
                }
            )
            continue

        yield sse_frame(progress_payload(session))
        if session.is_terminal:
            yield sse_frame(complete_payload(session))
            await run_in_threadpool(store.delete, session_id)
            logger.info("progress_stream_completed", session_id=session_id, status=session.status)
            return
