"""Generation session state shared between progress writers and the SSE reader."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from functools import lru_cache
import json
import math
from threading import Lock
import time
from typing import Any, Callable, Dict, Optional, Protocol

from src.core.config import get_settings
from src.core.errors import ValidationError
from src.core.logger import get_logger
from src.storage.redis_client import get_client


SESSION_STATUS_GENERATING = "generating"
SESSION_STATUS_TRANSLATING = "translating"
SESSION_STATUS_COMPLETED = "completed"
SESSION_STATUS_ERROR = "error"

TERMINAL_SESSION_STATUSES = {SESSION_STATUS_COMPLETED, SESSION_STATUS_ERROR}

UPDATE_START = "start"
UPDATE_GENERATED = "generated"
UPDATE_TRANSLATED = "translated"
UPDATE_ERROR = "error"
UPDATE_COMPLETE = "complete"

UPDATE_TYPES = (UPDATE_START, UPDATE_GENERATED, UPDATE_TRANSLATED, UPDATE_ERROR, UPDATE_COMPLETE)

SESSION_KEY_TEMPLATE = "contentos:generation-session:{session_id}"

logger = get_logger("contentos.progress")


@dataclass
class GenerationSession:
    session_id: str
    total_posts: int = 0
    generated: int = 0
    translated: int = 0
    status: str = SESSION_STATUS_GENERATING
    message: str = ""
    updated_at: float = field(default_factory=time.time)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SESSION_STATUSES

    def progress_percent(self) -> int:
        total_steps = self.total_posts * 2
        if total_steps <= 0:
            return 0
        # Half-up rounding, not Python's round-half-even.
        return int(math.floor((self.generated + self.translated) / total_steps * 100 + 0.5))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GenerationSession":
        return cls(
            session_id=str(payload["session_id"]),
            total_posts=int(payload.get("total_posts") or 0),
            generated=int(payload.get("generated") or 0),
            translated=int(payload.get("translated") or 0),
            status=str(payload.get("status") or SESSION_STATUS_GENERATING),
            message=str(payload.get("message") or ""),
            updated_at=float(payload.get("updated_at") or 0.0),
        )


class GenerationSessionStore(Protocol):
    def get(self, session_id: str) -> Optional[GenerationSession]:
        """Return the live session or None."""

    def save(self, session: GenerationSession) -> None:
        """Insert or replace the session, refreshing its TTL."""

    def delete(self, session_id: str) -> None:
        """Drop the session."""


class InMemoryGenerationSessionStore:
    """Process-local store; sessions idle for longer than the TTL are swept on every access."""

    def __init__(self, *, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._sessions: Dict[str, GenerationSession] = {}

    def _sweep(self, now: float) -> None:
        stale = [key for key, item in self._sessions.items() if now - item.updated_at > self._ttl]
        for key in stale:
            self._sessions.pop(key, None)
        if stale:
            logger.info("generation_sessions_expired", count=len(stale))

    def get(self, session_id: str) -> Optional[GenerationSession]:
        with self._lock:
            self._sweep(self._clock())
            session = self._sessions.get(session_id)
            return None if session is None else GenerationSession(**session.to_dict())

    def save(self, session: GenerationSession) -> None:
        with self._lock:
            now = self._clock()
            session.updated_at = now
            self._sweep(now)
            self._sessions[session.session_id] = GenerationSession(**session.to_dict())

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            self._sweep(self._clock())
            return len(self._sessions)


class RedisGenerationSessionStore:
    """Shared store for multi-process deployments; expiry is delegated to Redis key TTLs."""

    def __init__(self, redis_client: Any, *, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._redis = redis_client
        self._ttl = ttl_seconds

    @staticmethod
    def key(session_id: str) -> str:
        return SESSION_KEY_TEMPLATE.format(session_id=session_id)

    def get(self, session_id: str) -> Optional[GenerationSession]:
        raw = self._redis.get(self.key(session_id))
        if not raw:
            return None
        try:
            return GenerationSession.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.warning("generation_session_payload_invalid", session_id=session_id)
            return None

    def save(self, session: GenerationSession) -> None:
        session.updated_at = time.time()
        payload = json.dumps(session.to_dict(), separators=(",", ":"), sort_keys=True)
        self._redis.set(self.key(session.session_id), payload, ex=self._ttl)

    def delete(self, session_id: str) -> None:
        self._redis.delete(self.key(session_id))


@lru_cache(maxsize=1)
def get_session_store() -> GenerationSessionStore:
    settings = get_settings()
    if settings.progress_session_store.strip().lower() == "redis":
        return RedisGenerationSessionStore(get_client(), ttl_seconds=settings.progress_session_ttl_seconds)
    return InMemoryGenerationSessionStore(ttl_seconds=settings.progress_session_ttl_seconds)


def reset_session_store_cache() -> None:
    get_session_store.cache_clear()


def apply_progress_update(
    store: GenerationSessionStore,
    *,
    session_id: str,
    update_type: str,
    total_posts: Optional[int] = None,
    count: Optional[int] = None,
    message: Optional[str] = None,
) -> Optional[GenerationSession]:
    """
    Apply one progress event and return the resulting session.

    Counters only move forward: a late or duplicated event carrying a smaller
    count leaves the stored value untouched. Events other than `start` and
    `error` are ignored for sessions that do not exist.
    """
    if not session_id or not session_id.strip():
        raise ValidationError("Session ID required")
    if update_type not in UPDATE_TYPES:
        raise ValidationError(f"Unknown progress update type: {update_type}")

    if update_type == UPDATE_START:
        session = GenerationSession(
            session_id=session_id,
            total_posts=max(int(total_posts or 0), 0),
            status=SESSION_STATUS_GENERATING,
            message="Starting content generation...",
        )
        store.save(session)
        return session

    session = store.get(session_id)

    if update_type == UPDATE_ERROR:
        if session is None:
            session = GenerationSession(session_id=session_id)
        session.status = SESSION_STATUS_ERROR
        session.message = message or "An error occurred"
        store.save(session)
        return session

    if session is None:
        logger.info("progress_update_for_unknown_session", update_type=update_type)
        return None

    if update_type == UPDATE_GENERATED:
        session.generated = max(session.generated, int(count or 0))
        session.message = f"Generated {session.generated} of {session.total_posts} posts"
        if session.generated >= session.total_posts and not session.is_terminal:
            session.status = SESSION_STATUS_TRANSLATING
            session.message = "Starting translation to Swedish..."
    elif update_type == UPDATE_TRANSLATED:
        session.translated = max(session.translated, int(count or 0))
        session.message = f"Translated {session.translated} of {session.total_posts} posts"
        if session.translated >= session.total_posts and not session.is_terminal:
            session.status = SESSION_STATUS_COMPLETED
            session.message = "All posts generated and translated!"
    elif update_type == UPDATE_COMPLETE:
        session.status = SESSION_STATUS_COMPLETED
        session.message = "Generation completed successfully!"

    store.save(session)
    return session


class ProgressReporter:
    """Session-scoped writer used by the orchestrator; a reporter without a session id does nothing."""

    def __init__(self, store: Optional[GenerationSessionStore], session_id: Optional[str]) -> None:
        self._store = store
        self._session_id = (session_id or "").strip() or None

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def _emit(self, update_type: str, **kwargs: Any) -> None:
        if self._store is None or self._session_id is None:
            return
        try:
            apply_progress_update(self._store, session_id=self._session_id, update_type=update_type, **kwargs)
        except Exception as exc:
            # Progress is advisory; a broken session store must not fail generation.
            logger.warning("progress_update_failed", update_type=update_type, error=str(exc))

    def start(self, total_posts: int) -> None:
        self._emit(UPDATE_START, total_posts=total_posts)

    def generated(self, count: int) -> None:
        self._emit(UPDATE_GENERATED, count=count)

    def translated(self, count: int) -> None:
        self._emit(UPDATE_TRANSLATED, count=count)

    def error(self, message: str) -> None:
        self._emit(UPDATE_ERROR, message=message)

    def complete(self) -> None:
        self._emit(UPDATE_COMPLETE)
