"""Postcard CRUD routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.core.errors import ValidationError
from src.postcards.service import (
    create_postcard,
    delete_postcard,
    get_postcard,
    list_postcards,
    update_postcard,
)
from src.schemas.postcards import (
    PostcardCreateRequest,
    PostcardDeleteResponse,
    PostcardItem,
    PostcardListResponse,
    PostcardReplaceRequest,
    PostcardResponse,
    PostcardUpdateRequest,
)
from src.storage.db import get_session


router = APIRouter(prefix="/postcards", tags=["postcards"])


def _require_id(value: Optional[str]) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise ValidationError("Postcard ID is required")
    return normalized


@router.get("", response_model=PostcardListResponse)
def list_postcards_endpoint(
    state: Optional[str] = None,
    template: Optional[str] = None,
    order_by: str = Query(default="created_at", alias="orderBy"),
    order: str = "desc",
    session: Session = Depends(get_session),
) -> PostcardListResponse:
    postcards = list_postcards(session, state=state, template=template, order_by=order_by, order=order)
    return PostcardListResponse(
        postcards=[PostcardItem.model_validate(item) for item in postcards],
        count=len(postcards),
    )


@router.post("", response_model=PostcardResponse)
def create_postcard_endpoint(
    payload: PostcardCreateRequest,
    session: Session = Depends(get_session),
) -> PostcardResponse:
    postcard = create_postcard(
        session,
        english_content=payload.english_content,
        swedish_content=payload.swedish_content,
        state=payload.state,
        template=payload.template,
        scheduled_date=payload.scheduled_date,
        published_date=payload.published_date,
        translation_status=payload.translation_status,
    )
    return PostcardResponse(postcard=PostcardItem.model_validate(postcard))


@router.put("", response_model=PostcardResponse)
def replace_postcard_endpoint(
    payload: PostcardReplaceRequest,
    session: Session = Depends(get_session),
) -> PostcardResponse:
    postcard_id = _require_id(payload.id)
    changes = payload.model_dump(exclude_unset=True, exclude={"id"})
    postcard = update_postcard(session, postcard_id, changes=changes)
    return PostcardResponse(postcard=PostcardItem.model_validate(postcard))


@router.delete("", response_model=PostcardDeleteResponse)
def delete_postcard_by_query_endpoint(
    id: Optional[str] = None,
    session: Session = Depends(get_session),
) -> PostcardDeleteResponse:
    delete_postcard(session, _require_id(id))
    return PostcardDeleteResponse()


@router.get("/{postcard_id}", response_model=PostcardResponse)
def get_postcard_endpoint(
    postcard_id: str,
    session: Session = Depends(get_session),
) -> PostcardResponse:
    return PostcardResponse(postcard=PostcardItem.model_validate(get_postcard(session, postcard_id)))


@router.patch("/{postcard_id}", response_model=PostcardResponse)
def patch_postcard_endpoint(
    postcard_id: str,
    payload: PostcardUpdateRequest,
    session: Session = Depends(get_session),
) -> PostcardResponse:
    postcard = update_postcard(session, postcard_id, changes=payload.model_dump(exclude_unset=True))
    return PostcardResponse(postcard=PostcardItem.model_validate(postcard))


@router.delete("/{postcard_id}", response_model=PostcardDeleteResponse)
def delete_postcard_endpoint(
    postcard_id: str,
    session: Session = Depends(get_session),
) -> PostcardDeleteResponse:
    delete_postcard(session, postcard_id)
    return PostcardDeleteResponse()
