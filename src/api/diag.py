"""Deployment diagnostics: LLM reachability and storage round-trip."""

from __future__ import annotations

from datetime import datetime, timezone
import platform
from time import perf_counter
from typing import Any, Dict
from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.errors import ContentOSError
from src.core.logger import get_logger
from src.integrations.llm.llm_client import LLMClient, get_llm_client
from src.postcards.service import count_postcards
from src.storage.db import get_session


router = APIRouter(prefix="/diag", tags=["diag"])
logger = get_logger("contentos.diag")


def _elapsed_ms(started_at: float) -> int:
    return int((perf_counter() - started_at) * 1000)


def _check_llm(llm: LLMClient) -> Dict[str, Any]:
    check: Dict[str, Any] = {"ok": False, "ms": 0, "error": None}
    if not llm.configured:
        check["error"] = "CLAUDE_API_KEY missing"
        return check
    started_at = perf_counter()
    try:
        check["ok"] = llm.ping()
    except ContentOSError as exc:
        check["error"] = str(exc)
    check["ms"] = _elapsed_ms(started_at)
    return check


def _check_storage(session: Session) -> Dict[str, Any]:
    check: Dict[str, Any] = {"ok": False, "ms": 0, "error": None, "count": None}
    started_at = perf_counter()
    try:
        check["count"] = count_postcards(session)
        check["ok"] = True
    except ContentOSError as exc:
        check["error"] = getattr(exc, "detail", None) or str(exc)
    check["ms"] = _elapsed_ms(started_at)
    return check


def build_diagnostics(request: Request, *, llm: LLMClient, session: Session) -> Dict[str, Any]:
    settings = get_settings()
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id") or f"diag_{uuid4().hex[:12]}"
    payload: Dict[str, Any] = {
        "requestId": request_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "runtime": {
            "platform": settings.deployment_platform or "unknown",
            "region": settings.deployment_region,
            "pythonVersion": platform.python_version(),
        },
        "env": {
            "hasClaudeKey": bool(settings.claude_api_key.strip()),
            "hasDatabaseUrl": bool(settings.database_url.strip()),
            "hasRedisUrl": bool(settings.redis_url.strip()),
        },
        "checks": {
            "llm": _check_llm(llm),
            "storage": _check_storage(session),
        },
    }
    payload["durationMs"] = _elapsed_ms(started_at)
    return payload


def _respond(request: Request, llm: LLMClient, session: Session) -> JSONResponse:
    payload = build_diagnostics(request, llm=llm, session=session)
    healthy = payload["checks"]["llm"]["ok"] and payload["checks"]["storage"]["ok"]
    if not healthy:
        logger.warning(
            "diagnostics_degraded",
            llm_error=payload["checks"]["llm"]["error"],
            storage_error=payload["checks"]["storage"]["error"],
        )
    return JSONResponse(content=payload, status_code=200 if healthy else 503)


@router.get("")
def diagnostics(
    request: Request,
    llm: LLMClient = Depends(get_llm_client),
    session: Session = Depends(get_session),
) -> JSONResponse:
    return _respond(request, llm, session)


@router.post("")
def diagnostics_post(
    request: Request,
    llm: LLMClient = Depends(get_llm_client),
    session: Session = Depends(get_session),
) -> JSONResponse:
    return _respond(request, llm, session)
