"""CLI worker that drains queued translation jobs."""

from __future__ import annotations

from dataclasses import asdict
import argparse
import json
import time
from typing import Any, Dict, List

from src.core.config import get_settings
from src.core.logger import get_logger
from src.integrations.llm.llm_client import get_llm_client
from src.progress.store import get_session_store
from src.storage.db import get_background_session_factory, load_models
from src.translation.jobs import TranslationJobRunResult, run_pending_translation_jobs


logger = get_logger("contentos.translation_worker")


def run_worker_once(*, limit: int | None = None) -> List[TranslationJobRunResult]:
    settings = get_settings()
    load_models()
    resolved_limit = settings.translation_worker_job_limit if limit is None else limit
    return run_pending_translation_jobs(
        get_background_session_factory(),
        get_llm_client(),
        limit=resolved_limit,
        session_store=get_session_store(),
    )


def _summary(results: List[TranslationJobRunResult]) -> Dict[str, Any]:
    return {"processed": len(results), "jobs": [asdict(result) for result in results]}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run queued ContentOS translation jobs.")
    parser.add_argument("--once", action="store_true", help="Drain the queue once and exit.")
    parser.add_argument("--poll-seconds", type=float, default=None, help="Sleep between polls.")
    parser.add_argument("--limit", type=int, default=None, help="Max jobs per poll.")
    args = parser.parse_args()

    if args.once:
        print(json.dumps(_summary(run_worker_once(limit=args.limit)), ensure_ascii=True))
        return

    poll_seconds = args.poll_seconds
    if poll_seconds is None:
        poll_seconds = get_settings().translation_worker_poll_seconds

    logger.info("translation_worker_started", poll_seconds=poll_seconds, limit=args.limit)
    while True:
        results = run_worker_once(limit=args.limit)
        if results:
            logger.info("translation_worker_cycle", **_summary(results))
        time.sleep(max(poll_seconds, 0.1))


if __name__ == "__main__":
    main()
