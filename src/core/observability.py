"""Sentry reporting tagged with the request, generation session and translation job it belongs to."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.core.config import get_settings
from src.core.errors import ContentOSError, StorageError, UpstreamError
from src.core.logger import get_logger


logger = get_logger("contentos.observability")

_SENTRY_INITIALIZED = False


def _call_sentry_init(**kwargs: Any) -> None:
    sentry_sdk.init(**kwargs)


def drop_client_errors(event: Dict[str, Any], hint: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """`before_send` hook: ContentOS errors answered with a 4xx never leave the process."""

    exc_info = (hint or {}).get("exc_info")
    if exc_info and isinstance(exc_info[1], ContentOSError) and exc_info[1].status_code < 500:
        return None
    return event


def init_sentry() -> bool:
    global _SENTRY_INITIALIZED
    if _SENTRY_INITIALIZED:
        return True

    settings = get_settings()
    dsn = settings.sentry_dsn.strip()
    if not dsn:
        return False

    _call_sentry_init(
        dsn=dsn,
        environment=settings.env,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
        before_send=drop_client_errors,
        integrations=[FastApiIntegration()],
    )
    _SENTRY_INITIALIZED = True
    logger.info("sentry_initialized", env=settings.env, traces_sample_rate=settings.sentry_traces_sample_rate)
    return True


def workflow_fields(
    *,
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
    translation_job_id: Optional[str] = None,
    stage: Optional[str] = None,
) -> Dict[str, str]:
    fields = {
        "request_id": request_id,
        "session_id": session_id,
        "translation_job_id": translation_job_id,
        "stage": stage,
    }
    return {key: value for key, value in fields.items() if value}


def error_tags(exc: BaseException) -> Dict[str, str]:
    if not isinstance(exc, ContentOSError):
        return {}
    tags = {"error_type": type(exc).__name__, "status_code": str(exc.status_code)}
    if isinstance(exc, UpstreamError):
        tags["llm_failure_kind"] = exc.kind
        if exc.upstream_status is not None:
            tags["llm_status"] = str(exc.upstream_status)
    if isinstance(exc, StorageError):
        tags["storage_operation"] = str(exc).split(" ", 1)[0]
    return tags


def _tag_scope(scope: Any, fields: Dict[str, str]) -> None:
    for key, value in fields.items():
        scope.set_tag(key, value)
    if fields:
        scope.set_context("contentos", dict(fields))


@contextmanager
def sentry_scope(
    *,
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
    translation_job_id: Optional[str] = None,
    stage: Optional[str] = None,
) -> Iterator[Any]:
    fields = workflow_fields(
        request_id=request_id,
        session_id=session_id,
        translation_job_id=translation_job_id,
        stage=stage,
    )
    with sentry_sdk.new_scope() as scope:
        _tag_scope(scope, fields)
        yield scope


def capture_exception(
    exc: BaseException,
    *,
    session_id: Optional[str] = None,
    translation_job_id: Optional[str] = None,
    stage: Optional[str] = None,
) -> Optional[str]:
    """Send `exc` to Sentry with workflow and error tags; returns the event id, or None when Sentry is off."""

    fields = workflow_fields(session_id=session_id, translation_job_id=translation_job_id, stage=stage)
    with sentry_sdk.new_scope() as scope:
        _tag_scope(scope, fields)
        for key, value in error_tags(exc).items():
            scope.set_tag(key, value)
        return sentry_sdk.capture_exception(exc)


def reset_observability_for_tests() -> None:
    global _SENTRY_INITIALIZED
    _SENTRY_INITIALIZED = False
