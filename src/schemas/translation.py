"""Pydantic schemas for single and batch translation."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    english_content: Any = Field(default=None, alias="englishContent")
    template: Any = None


class TranslationMetadata(BaseModel):
    originalLength: int
    expansionRatio: str
    withinOptimalRange: bool
    template: str


class TranslateResponse(BaseModel):
    success: bool = True
    swedishContent: str
    characterCount: int
    metadata: TranslationMetadata


class BatchTranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_ids: Optional[List[str]] = Field(default=None, alias="postIds")


class BatchTranslateResponse(BaseModel):
    success: bool = True
    message: str
    found: int
    groups: int
    translatedCount: int
    failedCount: int
    errors: Optional[List[str]] = None


class TranslationStatusPost(BaseModel):
    id: str
    translation_status: Optional[str] = None


class TranslationStatusResponse(BaseModel):
    status: str
    count: int
    posts: List[TranslationStatusPost]
