"""Persistent translation jobs queued after generation and drained by a background task or the worker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import Callable, List, Optional, Sequence

from sqlalchemy import asc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.core.errors import ContentOSError, StorageError
from src.core.logger import get_logger
from src.core.observability import capture_exception
from src.integrations.llm.llm_client import LLMClient
from src.progress.store import GenerationSessionStore, ProgressReporter
from src.storage.models import TranslationJob
from src.translation.service import translate_batch


JOB_STATUS_QUEUED = "queued"
JOB_STATUS_IN_PROGRESS = "in_progress"
JOB_STATUS_DONE = "done"
JOB_STATUS_FAILED = "failed"

logger = get_logger("contentos.translation_jobs")


@dataclass(frozen=True)
class TranslationJobRunResult:
    job_id: str
    status: str
    translated_count: int = 0
    failed_count: int = 0
    error_message: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def job_post_ids(job: TranslationJob) -> List[str]:
    try:
        loaded = json.loads(job.post_ids_json or "[]")
    except ValueError:
        return []
    if not isinstance(loaded, list):
        return []
    return [str(item) for item in loaded if item]


def enqueue_translation_job(
    session: Session,
    *,
    post_ids: Sequence[str],
    session_id: Optional[str] = None,
) -> TranslationJob:
    job = TranslationJob(
        post_ids_json=json.dumps(list(post_ids)),
        session_id=session_id,
        status=JOB_STATUS_QUEUED,
    )
    try:
        session.add(job)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageError("enqueue_translation_job failed", detail=str(exc)) from exc
    logger.info("translation_job_queued", job_id=job.id, posts=len(post_ids))
    return job


def _finish(session: Session, job: TranslationJob, *, status: str, error_message: Optional[str] = None) -> None:
    job.status = status
    job.error_message = (error_message or "")[:255] or None
    job.finished_at = _utcnow()
    job.updated_at = job.finished_at
    session.commit()


def _claim(session: Session, job_id: str) -> bool:
    """Move a queued job to in_progress; False when another runner got there first."""

    try:
        claimed = session.execute(
            update(TranslationJob)
            .where(TranslationJob.id == job_id, TranslationJob.status == JOB_STATUS_QUEUED)
            .values(
                status=JOB_STATUS_IN_PROGRESS,
                attempts=TranslationJob.attempts + 1,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageError("claim_translation_job failed", detail=str(exc)) from exc
    return claimed.rowcount == 1


def run_translation_job(
    session: Session,
    llm: LLMClient,
    *,
    job_id: str,
    session_store: Optional[GenerationSessionStore] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Optional[TranslationJobRunResult]:
    """Run one queued job; returns None when the job is missing or already claimed."""

    if not _claim(session, job_id):
        logger.info("translation_job_skipped", job_id=job_id)
        return None
    job = session.get(TranslationJob, job_id, populate_existing=True)

    reporter = ProgressReporter(session_store, job.session_id)
    batch_kwargs = {} if sleep is None else {"sleep": sleep}
    try:
        batch = translate_batch(
            session,
            llm,
            post_ids=job_post_ids(job),
            on_progress=reporter.translated,
            **batch_kwargs,
        )
    except ContentOSError as exc:
        session.rollback()
        _finish(session, job, status=JOB_STATUS_FAILED, error_message=str(exc))
        reporter.error(exc.public_message)
        if exc.status_code >= 500:
            capture_exception(exc, session_id=job.session_id, translation_job_id=job.id, stage="translation_batch")
        logger.error("translation_job_failed", job_id=job.id, error=str(exc))
        return TranslationJobRunResult(job_id=job.id, status=JOB_STATUS_FAILED, error_message=str(exc))

    job.translated_count = batch.translated_count
    job.failed_count = batch.failed_count
    all_failed = batch.found > 0 and batch.translated_count == 0
    error_message = "; ".join(batch.errors) if batch.errors else None
    _finish(session, job, status=JOB_STATUS_FAILED if all_failed else JOB_STATUS_DONE, error_message=error_message)

    if all_failed:
        reporter.error("Translation failed for all posts")
    else:
        reporter.complete()

    logger.info(
        "translation_job_finished",
        job_id=job.id,
        status=job.status,
        translated=batch.translated_count,
        failed=batch.failed_count,
    )
    return TranslationJobRunResult(
        job_id=job.id,
        status=job.status,
        translated_count=batch.translated_count,
        failed_count=batch.failed_count,
        error_message=job.error_message,
    )


def list_queued_job_ids(session: Session, *, limit: int) -> List[str]:
    statement = (
        select(TranslationJob.id)
        .where(TranslationJob.status == JOB_STATUS_QUEUED)
        .order_by(asc(TranslationJob.created_at), asc(TranslationJob.id))
        .limit(max(limit, 0))
    )
    return list(session.scalars(statement).all())


def run_translation_job_in_background(
    session_factory: sessionmaker,
    llm: LLMClient,
    *,
    job_id: str,
    session_store: Optional[GenerationSessionStore] = None,
) -> None:
    """Entry point for FastAPI background tasks; owns its own session."""

    session = session_factory()
    try:
        run_translation_job(session, llm, job_id=job_id, session_store=session_store)
    except Exception as exc:
        logger.exception("translation_job_background_crashed", job_id=job_id, error=str(exc))
        capture_exception(exc, translation_job_id=job_id, stage="translation_job_background")
    finally:
        session.close()


def run_pending_translation_jobs(
    session_factory: sessionmaker,
    llm: LLMClient,
    *,
    limit: int,
    session_store: Optional[GenerationSessionStore] = None,
) -> List[TranslationJobRunResult]:
    """Drain up to `limit` queued jobs, oldest first, one session per job."""

    with session_factory() as session:
        job_ids = list_queued_job_ids(session, limit=limit)

    results: List[TranslationJobRunResult] = []
    for job_id in job_ids:
        with session_factory() as session:
            outcome = run_translation_job(session, llm, job_id=job_id, session_store=session_store)
        if outcome is not None:
            results.append(outcome)
    return results
