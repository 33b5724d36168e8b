"""Phase generation route."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import get_settings
from src.core.logger import get_logger
from src.generation.service import build_phase_request, phase_summary, run_phase_generation
from src.integrations.llm.llm_client import LLMClient, get_llm_client
from src.progress.store import GenerationSessionStore, get_session_store
from src.schemas.generation import GenerateRequest, GenerateResponse, PhaseSummary
from src.schemas.postcards import PostcardItem
from src.storage.db import get_background_session_factory, get_session
from src.translation.jobs import run_translation_job_in_background


router = APIRouter(tags=["generation"])
logger = get_logger("contentos.generation")


@router.post("/generate", response_model=GenerateResponse)
def generate_phase_endpoint(
    payload: GenerateRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
    session_store: GenerationSessionStore = Depends(get_session_store),
    background_session_factory: sessionmaker = Depends(get_background_session_factory),
) -> GenerateResponse:
    request = build_phase_request(
        phase_title=payload.phase_title,
        phase_description=payload.phase_description,
        posts_per_day=payload.posts_per_day,
        duration=payload.duration,
        template=payload.template,
    )
    result = run_phase_generation(
        session,
        llm,
        request,
        session_store=session_store,
        session_id=payload.session_id,
    )

    if result.translation_job_id and get_settings().translation_auto_dispatch:
        background_tasks.add_task(
            run_translation_job_in_background,
            background_session_factory,
            llm,
            job_id=result.translation_job_id,
            session_store=session_store,
        )
        logger.info("translation_job_dispatched", job_id=result.translation_job_id)

    return GenerateResponse(
        postcards=[PostcardItem.model_validate(item) for item in result.postcards],
        phase=PhaseSummary(**phase_summary(request)),
        savedCount=result.saved_count,
        failedCount=result.failed_count,
        translationJobId=result.translation_job_id,
        sessionId=result.session_id,
    )
