"""Canonical postcard states, templates, translation statuses and content limits."""

from __future__ import annotations

from typing import Optional, Tuple


POST_STATE_DRAFT = "draft"
POST_STATE_APPROVED = "approved"
POST_STATE_SCHEDULED = "scheduled"
POST_STATE_PUBLISHED = "published"

POST_STATES: Tuple[str, ...] = (
    POST_STATE_DRAFT,
    POST_STATE_APPROVED,
    POST_STATE_SCHEDULED,
    POST_STATE_PUBLISHED,
)

TEMPLATE_STORY = "story"
TEMPLATE_TOOL = "tool"
TEMPLATE_MIXED = "mixed"

POST_TEMPLATES: Tuple[str, ...] = (TEMPLATE_STORY, TEMPLATE_TOOL)
GENERATION_TEMPLATES: Tuple[str, ...] = (TEMPLATE_STORY, TEMPLATE_TOOL, TEMPLATE_MIXED)

# Query-string spelling for "rows without a template".
NULL_TEMPLATE_FILTER = "null"

TRANSLATION_PENDING = "pending"
TRANSLATION_PROCESSING = "processing"
TRANSLATION_COMPLETED = "completed"
TRANSLATION_FAILED = "failed"

TRANSLATION_STATUSES: Tuple[str, ...] = (
    TRANSLATION_PENDING,
    TRANSLATION_PROCESSING,
    TRANSLATION_COMPLETED,
    TRANSLATION_FAILED,
)

SWEDISH_OPTIMAL_MIN_CHARS = 500
SWEDISH_OPTIMAL_MAX_CHARS = 1000


def is_valid_post_state(value: Optional[str]) -> bool:
    return value in POST_STATES


def is_valid_post_template(value: Optional[str]) -> bool:
    return value is None or value in POST_TEMPLATES


def is_valid_translation_status(value: Optional[str]) -> bool:
    return value in TRANSLATION_STATUSES


def within_optimal_swedish_range(character_count: int) -> bool:
    return SWEDISH_OPTIMAL_MIN_CHARS <= character_count <= SWEDISH_OPTIMAL_MAX_CHARS
