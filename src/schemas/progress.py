"""Pydantic schemas for generation progress updates."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProgressUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    type: Optional[str] = None
    total_posts: Optional[int] = Field(default=None, alias="totalPosts")
    count: Optional[int] = None
    message: Optional[str] = None


class ProgressUpdateResponse(BaseModel):
    success: bool = True
    status: Optional[str] = None
    progress: Optional[int] = None
