"""Pydantic schemas for postcard CRUD endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PostcardItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    english_content: str
    swedish_content: str
    state: str
    template: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    published_date: Optional[datetime] = None
    translation_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PostcardCreateRequest(BaseModel):
    english_content: Optional[str] = None
    swedish_content: Optional[str] = None
    state: Optional[str] = None
    template: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    published_date: Optional[datetime] = None
    translation_status: Optional[str] = None


class PostcardUpdateRequest(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    english_content: Optional[str] = None
    swedish_content: Optional[str] = None
    state: Optional[str] = None
    template: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    published_date: Optional[datetime] = None
    translation_status: Optional[str] = None


class PostcardReplaceRequest(PostcardUpdateRequest):
    id: Optional[str] = None


class PostcardResponse(BaseModel):
    success: bool = True
    postcard: PostcardItem


class PostcardListResponse(BaseModel):
    success: bool = True
    postcards: List[PostcardItem]
    count: int


class PostcardDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Postcard deleted successfully"
