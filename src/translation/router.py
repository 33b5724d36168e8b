"""Single and batch translation routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.integrations.llm.llm_client import LLMClient, get_llm_client
from src.schemas.translation import (
    BatchTranslateRequest,
    BatchTranslateResponse,
    TranslateRequest,
    TranslateResponse,
    TranslationMetadata,
    TranslationStatusResponse,
)
from src.storage.db import get_session
from src.translation.service import translate_batch, translate_post, translation_status_summary


router = APIRouter(tags=["translation"])


@router.post("/translate", response_model=TranslateResponse)
def translate_endpoint(
    payload: TranslateRequest,
    llm: LLMClient = Depends(get_llm_client),
) -> TranslateResponse:
    result = translate_post(llm, english_content=payload.english_content, template=payload.template)
    return TranslateResponse(
        swedishContent=result.swedish_content,
        characterCount=result.character_count,
        metadata=TranslationMetadata(**result.metadata()),
    )


@router.post("/translate-batch", response_model=BatchTranslateResponse, response_model_exclude_none=True)
def translate_batch_endpoint(
    payload: BatchTranslateRequest,
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
) -> BatchTranslateResponse:
    result = translate_batch(session, llm, post_ids=payload.post_ids or [])
    return BatchTranslateResponse(
        message=result.message,
        found=result.found,
        groups=result.groups,
        translatedCount=result.translated_count,
        failedCount=result.failed_count,
        errors=result.errors or None,
    )


@router.get("/translate-batch", response_model=TranslationStatusResponse)
def translation_status_endpoint(
    status: Optional[str] = None,
    session: Session = Depends(get_session),
) -> TranslationStatusResponse:
    return TranslationStatusResponse(**translation_status_summary(session, status=status))
