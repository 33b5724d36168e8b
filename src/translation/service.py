"""Swedish LinkedIn translation: single posts on demand and stored posts in groups."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.errors import ContentOSError, UpstreamError, ValidationError
from src.core.logger import get_logger
from src.core.metrics import record_translation
from src.generation.prompts import (
    BATCH_TRANSLATION_SYSTEM_PROMPT,
    batch_translation_user_prompt,
    translation_system_prompt,
    translation_user_prompt,
)
from src.integrations.llm.llm_client import LLMClient
from src.integrations.llm.parsing import extract_json_array
from src.postcards.service import (
    complete_translation,
    list_by_translation_status,
    list_untranslated_postcards,
    set_translation_status,
)
from src.postcards.states import (
    POST_TEMPLATES,
    TRANSLATION_FAILED,
    TRANSLATION_PENDING,
    TRANSLATION_PROCESSING,
    is_valid_translation_status,
    within_optimal_swedish_range,
)
from src.storage.models import Postcard
from src.translation.text import clean_swedish_content


logger = get_logger("contentos.translation")

SHORT_TRANSLATION_WARNING_CHARS = 300


@dataclass(frozen=True)
class SingleTranslation:
    swedish_content: str
    character_count: int
    original_length: int
    template: Optional[str]

    @property
    def expansion_ratio(self) -> str:
        if self.original_length <= 0:
            return "0.00"
        return f"{self.character_count / self.original_length:.2f}"

    @property
    def within_optimal_range(self) -> bool:
        return within_optimal_swedish_range(self.character_count)

    def metadata(self) -> Dict[str, Any]:
        return {
            "originalLength": self.original_length,
            "expansionRatio": self.expansion_ratio,
            "withinOptimalRange": self.within_optimal_range,
            "template": self.template or "unspecified",
        }


@dataclass
class BatchTranslationResult:
    found: int = 0
    groups: int = 0
    translated_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)
    completed_ids: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.found == 0:
            return "No posts need translation"
        return f"Translated {self.translated_count} of {self.found} posts"


def translate_post(llm: LLMClient, *, english_content: Any, template: Any = None) -> SingleTranslation:
    if not isinstance(english_content, str) or not english_content.strip():
        raise ValidationError("englishContent is required")

    settings = get_settings()
    max_input = settings.translation_max_input_chars
    if len(english_content) > max_input:
        raise ValidationError(f"englishContent seems too long for a Twitter post (max {max_input} chars)")
    if template and template not in POST_TEMPLATES:
        raise ValidationError('template must be "story" or "tool" if provided')

    reply = llm.complete(
        system=translation_system_prompt(template or None),
        user=translation_user_prompt(english_content),
        max_tokens=settings.translation_max_tokens,
        temperature=settings.translation_temperature,
    )
    swedish = clean_swedish_content(reply, limit=settings.swedish_max_chars)
    if not swedish.strip():
        logger.error("translation_reply_empty", reply_length=len(reply or ""))
        raise UpstreamError("Translation reply contained no Swedish text")
    if len(swedish) < SHORT_TRANSLATION_WARNING_CHARS:
        logger.warning("translation_shorter_than_expected", character_count=len(swedish))

    record_translation(mode="single", outcome="completed")
    return SingleTranslation(
        swedish_content=swedish,
        character_count=len(swedish),
        original_length=len(english_content),
        template=template or None,
    )


def _translation_text(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("swedish_content") or entry.get("swedishContent")
        if isinstance(value, str):
            return value
    return ""


def _translate_group(session: Session, llm: LLMClient, group: Sequence[Postcard], result: BatchTranslationResult) -> None:
    settings = get_settings()
    ids = [postcard.id for postcard in group]
    set_translation_status(session, post_ids=ids, status=TRANSLATION_PROCESSING)

    reply = llm.complete(
        system=BATCH_TRANSLATION_SYSTEM_PROMPT,
        user=batch_translation_user_prompt([(postcard.english_content, postcard.template) for postcard in group]),
        max_tokens=settings.translation_batch_max_tokens,
        temperature=settings.translation_temperature,
    )
    entries = extract_json_array(reply)

    missing: List[str] = []
    for index, postcard in enumerate(group):
        raw = _translation_text(entries[index]) if index < len(entries) else ""
        swedish = clean_swedish_content(raw, limit=settings.swedish_max_chars) if raw.strip() else ""
        if not swedish:
            missing.append(postcard.id)
            continue
        complete_translation(session, postcard_id=postcard.id, swedish_content=swedish)
        result.completed_ids.append(postcard.id)
        result.translated_count += 1

    if missing:
        set_translation_status(session, post_ids=missing, status=TRANSLATION_FAILED)
        result.failed_count += len(missing)
        result.errors.append(f"Missing translations for {len(missing)} post(s) in batch {result.groups}")
        logger.warning("translation_batch_missing_entries", group=result.groups, missing=len(missing))


def translate_batch(
    session: Session,
    llm: LLMClient,
    *,
    post_ids: Sequence[str],
    batch_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    on_progress: Optional[Callable[[int], None]] = None,
) -> BatchTranslationResult:
    """
    Translate stored posts that are still pending, `batch_size` posts per LLM call.

    Each group is marked processing and committed before its call. A failing
    group is marked failed and the run moves on to the next one; there are no
    retries. `on_progress` receives the running translated total after every
    group.
    """
    if not post_ids:
        raise ValidationError("postIds array is required")

    settings = get_settings()
    size = batch_size or settings.translation_batch_size
    delay = settings.translation_batch_delay_seconds if delay_seconds is None else delay_seconds

    posts = list_untranslated_postcards(session, post_ids=list(post_ids))
    result = BatchTranslationResult(found=len(posts))
    if not posts:
        logger.info("translation_batch_nothing_pending", requested=len(post_ids))
        return result

    groups = [posts[start : start + size] for start in range(0, len(posts), size)]
    for position, group in enumerate(groups):
        result.groups += 1
        ids = [postcard.id for postcard in group]
        try:
            _translate_group(session, llm, group, result)
        except ContentOSError as exc:
            session.rollback()
            unfinished = [post_id for post_id in ids if post_id not in result.completed_ids]
            set_translation_status(session, post_ids=unfinished, status=TRANSLATION_FAILED)
            result.failed_count += len(unfinished)
            result.errors.append(f"Batch {result.groups} failed: {exc}")
            logger.error(
                "translation_batch_group_failed",
                group=result.groups,
                size=len(ids),
                failed=len(unfinished),
                error=str(exc),
            )

        if on_progress is not None:
            on_progress(result.translated_count)
        if position < len(groups) - 1 and delay > 0:
            sleep(delay)

    record_translation(mode="batch", outcome="completed", count=result.translated_count)
    record_translation(mode="batch", outcome="failed", count=result.failed_count)
    logger.info(
        "translation_batch_finished",
        found=result.found,
        groups=result.groups,
        translated=result.translated_count,
        failed=result.failed_count,
    )
    return result


def translation_status_summary(session: Session, *, status: Optional[str] = None) -> Dict[str, Any]:
    resolved = status or TRANSLATION_PENDING
    if not is_valid_translation_status(resolved):
        raise ValidationError("Invalid translation status")
    posts = list_by_translation_status(session, status=resolved)
    return {
        "status": resolved,
        "count": len(posts),
        "posts": [{"id": post.id, "translation_status": post.translation_status} for post in posts],
    }
