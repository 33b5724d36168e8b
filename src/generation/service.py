"""Phase generation: brief validation, LLM call, post normalisation and persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from src.core.config import get_settings
from src.core.errors import ContentOSError, UpstreamError, ValidationError
from src.core.logger import get_logger
from src.core.metrics import record_postcard_insert_failure, record_posts_generated
from src.core.observability import capture_exception
from src.generation.prompts import generation_system_prompt, generation_user_prompt
from src.integrations.llm.llm_client import LLMClient
from src.integrations.llm.parsing import extract_json_array
from src.postcards.service import create_postcard
from src.postcards.states import (
    GENERATION_TEMPLATES,
    POST_STATE_DRAFT,
    POST_TEMPLATES,
    TEMPLATE_MIXED,
    TEMPLATE_STORY,
    TEMPLATE_TOOL,
    TRANSLATION_PENDING,
)
from src.progress.store import GenerationSessionStore, ProgressReporter
from src.storage.models import Postcard
from src.translation.jobs import enqueue_translation_job


logger = get_logger("contentos.generation")

MIN_POSTS_PER_DAY = 1
MAX_POSTS_PER_DAY = 5
MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 30

TRANSLATION_NOT_QUEUED_MESSAGE = "Posts were saved but translation could not be queued"


@dataclass(frozen=True)
class PhaseRequest:
    phase_title: str
    phase_description: str
    posts_per_day: int = 1
    duration: int = 14
    template: str = TEMPLATE_MIXED

    @property
    def total_posts(self) -> int:
        return self.posts_per_day * self.duration


@dataclass(frozen=True)
class GeneratedPost:
    english_content: str
    template: str


@dataclass
class PhaseGenerationResult:
    request: PhaseRequest
    postcards: List[Postcard] = field(default_factory=list)
    failed_count: int = 0
    translation_job_id: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def saved_count(self) -> int:
        return len(self.postcards)

    @property
    def post_ids(self) -> List[str]:
        return [postcard.id for postcard in self.postcards]


def build_phase_request(
    *,
    phase_title: Any,
    phase_description: Any,
    posts_per_day: Any = None,
    duration: Any = None,
    template: Any = None,
) -> PhaseRequest:
    """Validate a phase brief; raises ValidationError on the first bad field."""

    title = phase_title.strip() if isinstance(phase_title, str) else ""
    description = phase_description.strip() if isinstance(phase_description, str) else ""
    if not title or not description:
        raise ValidationError("Phase title and description are required")

    max_description = get_settings().generation_max_description_chars
    if len(description) > max_description:
        raise ValidationError(f"Phase description must be {max_description} characters or less")

    resolved_posts_per_day = posts_per_day or 1
    if (
        isinstance(resolved_posts_per_day, bool)
        or not isinstance(resolved_posts_per_day, int)
        or not MIN_POSTS_PER_DAY <= resolved_posts_per_day <= MAX_POSTS_PER_DAY
    ):
        raise ValidationError(f"Posts per day must be between {MIN_POSTS_PER_DAY} and {MAX_POSTS_PER_DAY}")

    resolved_duration = duration or 14
    if (
        isinstance(resolved_duration, bool)
        or not isinstance(resolved_duration, int)
        or not MIN_DURATION_DAYS <= resolved_duration <= MAX_DURATION_DAYS
    ):
        raise ValidationError(f"Duration must be between {MIN_DURATION_DAYS} and {MAX_DURATION_DAYS} days")

    resolved_template = template or TEMPLATE_MIXED
    if resolved_template not in GENERATION_TEMPLATES:
        raise ValidationError("Template must be story, tool, or mixed")

    return PhaseRequest(
        phase_title=title,
        phase_description=description,
        posts_per_day=resolved_posts_per_day,
        duration=resolved_duration,
        template=resolved_template,
    )


def _fallback_template(requested: str, index: int) -> str:
    if requested == TEMPLATE_MIXED:
        return TEMPLATE_STORY if index % 2 == 0 else TEMPLATE_TOOL
    return requested


def normalize_generated_posts(items: List[Any], *, requested_template: str, max_chars: int) -> List[GeneratedPost]:
    """Trim, clamp and template-fill raw LLM items; empty entries are dropped."""

    posts: List[GeneratedPost] = []
    for index, item in enumerate(items):
        if isinstance(item, dict):
            raw_content = item.get("english_content")
            raw_template = item.get("template")
        elif isinstance(item, str):
            raw_content = item
            raw_template = None
        else:
            continue

        content = raw_content.strip() if isinstance(raw_content, str) else ""
        content = content[:max_chars].strip()
        if not content:
            continue

        if raw_template in POST_TEMPLATES:
            template = raw_template
        else:
            template = _fallback_template(requested_template, index)
        posts.append(GeneratedPost(english_content=content, template=template))
    return posts


def generate_phase_posts(llm: LLMClient, request: PhaseRequest) -> List[GeneratedPost]:
    settings = get_settings()
    max_chars = settings.english_max_chars
    reply = llm.complete(
        system=generation_system_prompt(
            template=request.template,
            phase_title=request.phase_title,
            phase_description=request.phase_description,
            max_chars=max_chars,
        ),
        user=generation_user_prompt(
            phase_title=request.phase_title,
            phase_description=request.phase_description,
            total_posts=request.total_posts,
            posts_per_day=request.posts_per_day,
            duration=request.duration,
            template=request.template,
            max_chars=max_chars,
        ),
        max_tokens=settings.generation_max_tokens,
        temperature=settings.generation_temperature,
    )

    items = extract_json_array(reply)
    posts = normalize_generated_posts(items, requested_template=request.template, max_chars=max_chars)
    logger.info(
        "phase_posts_generated",
        requested=request.total_posts,
        returned=len(items),
        usable=len(posts),
        template=request.template,
    )
    return posts


def run_phase_generation(
    session: Session,
    llm: LLMClient,
    request: PhaseRequest,
    *,
    session_store: Optional[GenerationSessionStore] = None,
    session_id: Optional[str] = None,
) -> PhaseGenerationResult:
    """
    Generate a phase and persist every usable post as a pending-translation draft.

    Posts are inserted one at a time so a single bad row does not lose the
    rest of the batch. The translation job is only queued here; running it
    is left to the caller or the worker.
    """
    reporter = ProgressReporter(session_store, session_id)
    reporter.start(request.total_posts)
    result = PhaseGenerationResult(request=request, session_id=reporter.session_id)

    try:
        posts = generate_phase_posts(llm, request)
    except UpstreamError as exc:
        reporter.error(exc.public_message)
        raise

    for index, post in enumerate(posts):
        try:
            postcard = create_postcard(
                session,
                english_content=post.english_content,
                swedish_content="",
                state=POST_STATE_DRAFT,
                template=post.template,
                translation_status=TRANSLATION_PENDING,
            )
        except ContentOSError as exc:
            result.failed_count += 1
            record_postcard_insert_failure()
            logger.warning("postcard_insert_failed", index=index, error=str(exc))
            continue
        result.postcards.append(postcard)
        record_posts_generated(template=post.template)

    reporter.generated(result.saved_count)

    if result.postcards:
        try:
            job = enqueue_translation_job(session, post_ids=result.post_ids, session_id=reporter.session_id)
        except ContentOSError as exc:
            logger.error("translation_job_enqueue_failed", saved=result.saved_count, error=str(exc))
            capture_exception(exc, session_id=reporter.session_id, stage="translation_enqueue")
            reporter.error(TRANSLATION_NOT_QUEUED_MESSAGE)
        else:
            result.translation_job_id = job.id
    else:
        reporter.complete()

    logger.info(
        "phase_generation_completed",
        saved=result.saved_count,
        failed=result.failed_count,
        translation_job_id=result.translation_job_id,
    )
    return result


def phase_summary(request: PhaseRequest) -> Dict[str, Any]:
    return {
        "title": request.phase_title,
        "description": request.phase_description,
        "postsPerDay": request.posts_per_day,
        "duration": request.duration,
        "totalPosts": request.total_posts,
        "template": request.template,
    }
