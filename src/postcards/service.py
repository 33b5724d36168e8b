"""Postcard persistence: CRUD, filtering and translation bookkeeping."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.errors import NotFoundError, StorageError, ValidationError
from src.core.logger import get_logger
from src.postcards.states import (
    NULL_TEMPLATE_FILTER,
    POST_STATE_DRAFT,
    POST_STATE_PUBLISHED,
    POST_TEMPLATES,
    TRANSLATION_COMPLETED,
    TRANSLATION_PENDING,
    is_valid_post_state,
    is_valid_post_template,
    is_valid_translation_status,
)
from src.storage.models import Postcard


logger = get_logger("contentos.postcards")

COMPLETED_WITHOUT_SWEDISH_MESSAGE = "Swedish content is required when translation is completed"

ORDERABLE_COLUMNS = {
    "created_at": Postcard.created_at,
    "updated_at": Postcard.updated_at,
    "scheduled_date": Postcard.scheduled_date,
    "published_date": Postcard.published_date,
    "state": Postcard.state,
    "template": Postcard.template,
}

_UPDATABLE_FIELDS = (
    "english_content",
    "swedish_content",
    "state",
    "template",
    "scheduled_date",
    "published_date",
    "translation_status",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _storage_failure(session: Session, context: str, exc: SQLAlchemyError) -> StorageError:
    session.rollback()
    logger.error("postcard_storage_error", context=context, error=str(exc))
    return StorageError(f"{context} failed", detail=str(exc))


def _validate_english(value: Any) -> str:
    text = value if isinstance(value, str) else ""
    if not text.strip():
        raise ValidationError("English content is required")
    limit = get_settings().english_max_chars
    if len(text) > limit:
        raise ValidationError(f"English content exceeds {limit} characters")
    return text


def _validate_swedish(value: Any) -> str:
    text = value or ""
    limit = get_settings().swedish_max_chars
    if len(text) > limit:
        raise ValidationError(f"Swedish content exceeds {limit} characters")
    return text


def _validate_state(value: Any) -> str:
    if not is_valid_post_state(value):
        raise ValidationError("Invalid post state")
    return value


def _validate_template(value: Any) -> Optional[str]:
    if not is_valid_post_template(value):
        raise ValidationError("Invalid post template")
    return value


def _validate_translation_status(value: Any) -> Optional[str]:
    if value is not None and not is_valid_translation_status(value):
        raise ValidationError("Invalid translation status")
    return value


def list_postcards(
    session: Session,
    *,
    state: Optional[str] = None,
    template: Optional[str] = None,
    order_by: str = "created_at",
    order: str = "desc",
) -> List[Postcard]:
    statement = select(Postcard)

    if state and is_valid_post_state(state):
        statement = statement.where(Postcard.state == state)

    if template:
        if template == NULL_TEMPLATE_FILTER:
            statement = statement.where(Postcard.template.is_(None))
        elif template in POST_TEMPLATES:
            statement = statement.where(Postcard.template == template)

    column = ORDERABLE_COLUMNS.get(order_by, Postcard.created_at)
    direction = asc if order == "asc" else desc
    statement = statement.order_by(direction(column), direction(Postcard.id))

    try:
        return list(session.scalars(statement).all())
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "list_postcards", exc) from exc


def get_postcard(session: Session, postcard_id: str) -> Postcard:
    try:
        postcard = session.get(Postcard, postcard_id)
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "get_postcard", exc) from exc
    if postcard is None:
        raise NotFoundError()
    return postcard


def create_postcard(
    session: Session,
    *,
    english_content: Any,
    swedish_content: Optional[str] = None,
    state: Optional[str] = None,
    template: Optional[str] = None,
    scheduled_date: Optional[datetime] = None,
    published_date: Optional[datetime] = None,
    translation_status: Optional[str] = None,
) -> Postcard:
    english = _validate_english(english_content)
    swedish = _validate_swedish(swedish_content)
    resolved_state = _validate_state(state) if state else POST_STATE_DRAFT
    resolved_template = _validate_template(template or None)
    resolved_status = _validate_translation_status(translation_status)
    if resolved_status is None:
        resolved_status = TRANSLATION_COMPLETED if swedish.strip() else TRANSLATION_PENDING
    if resolved_status == TRANSLATION_COMPLETED and not swedish.strip():
        raise ValidationError(COMPLETED_WITHOUT_SWEDISH_MESSAGE)

    now = _utcnow()
    postcard = Postcard(
        english_content=english,
        swedish_content=swedish,
        state=resolved_state,
        template=resolved_template,
        scheduled_date=scheduled_date,
        published_date=published_date,
        translation_status=resolved_status,
        created_at=now,
        updated_at=now,
    )
    try:
        session.add(postcard)
        session.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "create_postcard", exc) from exc
    return postcard


def update_postcard(session: Session, postcard_id: str, *, changes: Mapping[str, Any]) -> Postcard:
    """Apply a partial update; only keys present in `changes` are touched."""

    postcard = get_postcard(session, postcard_id)
    values: Dict[str, Any] = {key: changes[key] for key in _UPDATABLE_FIELDS if key in changes}

    if "english_content" in values:
        values["english_content"] = _validate_english(values["english_content"])
    if "swedish_content" in values:
        values["swedish_content"] = _validate_swedish(values["swedish_content"])
    if "state" in values:
        values["state"] = _validate_state(values["state"])
    if "template" in values:
        values["template"] = _validate_template(values["template"])
    if "translation_status" in values:
        values["translation_status"] = _validate_translation_status(values["translation_status"])

    # A completed row always carries Swedish text; clearing it reopens translation.
    status_after = values["translation_status"] if "translation_status" in values else postcard.translation_status
    swedish_after = values["swedish_content"] if "swedish_content" in values else (postcard.swedish_content or "")
    if status_after == TRANSLATION_COMPLETED and not swedish_after.strip():
        if "translation_status" in values:
            raise ValidationError(COMPLETED_WITHOUT_SWEDISH_MESSAGE)
        values["translation_status"] = TRANSLATION_PENDING

    now = _utcnow()
    if values.get("published_date") and "state" not in values:
        values["state"] = POST_STATE_PUBLISHED
    if values.get("state") == POST_STATE_PUBLISHED and not values.get("published_date"):
        if postcard.published_date is None:
            values["published_date"] = now

    for key, value in values.items():
        setattr(postcard, key, value)
    postcard.updated_at = now

    try:
        session.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "update_postcard", exc) from exc
    return postcard


def delete_postcard(session: Session, postcard_id: str) -> None:
    try:
        session.execute(delete(Postcard).where(Postcard.id == postcard_id))
        session.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "delete_postcard", exc) from exc


def list_by_translation_status(session: Session, *, status: str) -> List[Postcard]:
    statement = (
        select(Postcard)
        .where(Postcard.translation_status == status)
        .order_by(asc(Postcard.created_at), asc(Postcard.id))
    )
    try:
        return list(session.scalars(statement).all())
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "list_by_translation_status", exc) from exc


def count_postcards(session: Session) -> int:
    try:
        return int(session.scalar(select(func.count()).select_from(Postcard)) or 0)
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "count_postcards", exc) from exc


def list_untranslated_postcards(session: Session, *, post_ids: Sequence[str]) -> List[Postcard]:
    """Return posts among `post_ids` still awaiting translation, in the order the ids were given."""

    if not post_ids:
        return []
    statement = select(Postcard).where(
        Postcard.id.in_(list(post_ids)),
        or_(
            Postcard.translation_status.is_(None),
            Postcard.translation_status == TRANSLATION_PENDING,
        ),
    )
    try:
        found = {postcard.id: postcard for postcard in session.scalars(statement).all()}
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "list_untranslated_postcards", exc) from exc

    ordered: List[Postcard] = []
    seen: set[str] = set()
    for post_id in post_ids:
        if post_id in found and post_id not in seen:
            ordered.append(found[post_id])
            seen.add(post_id)
    return ordered


def set_translation_status(session: Session, *, post_ids: Iterable[str], status: str) -> None:
    ids = list(post_ids)
    if not ids:
        return
    try:
        session.execute(
            update(Postcard)
            .where(Postcard.id.in_(ids))
            .values(translation_status=status, updated_at=_utcnow())
            .execution_options(synchronize_session="fetch")
        )
        session.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "set_translation_status", exc) from exc


def complete_translation(session: Session, *, postcard_id: str, swedish_content: str) -> None:
    try:
        session.execute(
            update(Postcard)
            .where(Postcard.id == postcard_id)
            .values(
                swedish_content=swedish_content,
                translation_status=TRANSLATION_COMPLETED,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        session.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(session, "complete_translation", exc) from exc
