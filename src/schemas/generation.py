"""Pydantic schemas for phase generation."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.postcards import PostcardItem


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Range checks live in the service so every violation maps to the same 400 body.
    phase_title: Any = Field(default=None, alias="phaseTitle")
    phase_description: Any = Field(default=None, alias="phaseDescription")
    posts_per_day: Any = Field(default=None, alias="postsPerDay")
    duration: Any = None
    template: Any = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class PhaseSummary(BaseModel):
    title: str
    description: str
    postsPerDay: int
    duration: int
    totalPosts: int
    template: str


class GenerateResponse(BaseModel):
    success: bool = True
    postcards: List[PostcardItem]
    phase: PhaseSummary
    savedCount: int
    failedCount: int
    translationJobId: Optional[str] = None
    sessionId: Optional[str] = None
