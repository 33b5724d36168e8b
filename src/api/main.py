"""FastAPI application entrypoint for ContentOS."""

from __future__ import annotations

from time import perf_counter
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from src.api.diag import router as diag_router
from src.core.config import get_settings
from src.core.errors import ContentOSError, StorageError, UpstreamError
from src.core.logger import bind_request_context, clear_request_context, get_logger
from src.core.metrics import record_http_request, render_prometheus_metrics
from src.core.observability import capture_exception, init_sentry, sentry_scope
from src.generation.router import router as generation_router
from src.postcards.router import router as postcards_router
from src.progress.router import router as progress_router
from src.storage.db import load_models
from src.storage.db import test_connection as test_db_connection
from src.storage.redis_client import test_connection as test_redis_connection
from src.translation.router import router as translation_router


settings = get_settings()
logger = get_logger("contentos.api")

app = FastAPI(title=settings.app_name, version=settings.app_version)


def _session_id_from_request(request: Request) -> Optional[str]:
    value = request.query_params.get("sessionId") or request.headers.get("x-session-id")
    return value.strip() if value and value.strip() else None


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    started_at = perf_counter()
    request_id = request.headers.get("x-request-id", str(uuid4()))
    session_id = _session_id_from_request(request)
    bind_request_context(request_id=request_id, session_id=session_id)

    status_code = 500
    try:
        with sentry_scope(request_id=request_id, session_id=session_id, stage="http"):
            response = await call_next(request)
        status_code = int(response.status_code)
    finally:
        duration = perf_counter() - started_at
        if settings.metrics_enabled:
            record_http_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_seconds=duration,
            )
        clear_request_context()

    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(ContentOSError)
async def contentos_error_handler(request: Request, exc: ContentOSError) -> JSONResponse:
    log_fields = {"path": request.url.path, "status_code": exc.status_code, "error": str(exc)}
    if isinstance(exc, UpstreamError):
        log_fields["kind"] = exc.kind
    if isinstance(exc, StorageError) and exc.detail:
        log_fields["detail"] = exc.detail

    if exc.status_code >= 500:
        logger.error("request_failed", **log_fields)
        capture_exception(exc)
    else:
        logger.info("request_rejected", **log_fields)
    return _error_response(exc.status_code, exc.public_message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request body"
    logger.info("request_validation_failed", path=request.url.path, error=message)
    return _error_response(400, message)


@app.on_event("startup")
def on_startup() -> None:
    load_models()
    sentry_enabled = init_sentry()
    logger.info(
        "application_startup",
        env=settings.env,
        version=settings.app_version,
        sentry_enabled=sentry_enabled,
        metrics_enabled=settings.metrics_enabled,
        progress_session_store=settings.progress_session_store,
        translation_auto_dispatch=settings.translation_auto_dispatch,
    )
    if not settings.claude_api_key.strip():
        logger.warning("llm_api_key_missing")


@app.get("/health")
def health() -> JSONResponse:
    db_ok, db_error = test_db_connection()
    services = {"database": {"ok": db_ok, "error": db_error}}

    healthy = db_ok
    if settings.progress_session_store.strip().lower() == "redis":
        redis_ok, redis_error = test_redis_connection()
        services["redis"] = {"ok": redis_ok, "error": redis_error}
        healthy = healthy and redis_ok
    else:
        services["session_store"] = {"ok": True, "error": None, "backend": "memory"}

    payload = {
        "status": "ok" if healthy else "degraded",
        "env": settings.env,
        "services": services,
    }
    return JSONResponse(content=payload, status_code=200 if healthy else 503)


@app.get("/version")
def version() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "env": settings.env,
    }


@app.get("/metrics")
def metrics() -> PlainTextResponse:
    if not settings.metrics_enabled:
        return PlainTextResponse("metrics disabled\n", status_code=404)

    payload = render_prometheus_metrics(
        app_name=settings.app_name,
        app_version=settings.app_version,
        env=settings.env,
    )
    return PlainTextResponse(
        payload,
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(postcards_router)
app.include_router(generation_router)
app.include_router(translation_router)
app.include_router(progress_router)
app.include_router(diag_router)
