from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Callable, Dict, List, Optional, Union

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import src.api.main as api_main
from src.core.config import get_settings
from src.core.errors import UpstreamError
from src.integrations.llm.llm_client import get_llm_client
from src.progress.store import InMemoryGenerationSessionStore, get_session_store
from src.storage.db import Base, get_background_session_factory, get_session, load_models


Reply = Union[str, Exception, Callable[[str, str], str]]


class FakeLLM:
    """Scripted stand-in for LLMClient; replies are consumed in order, the last one repeats."""

    def __init__(self, replies: Optional[List[Reply]] = None, *, configured: bool = True) -> None:
        self.replies: List[Reply] = list(replies or [])
        self.calls: List[Dict[str, Any]] = []
        self.configured = configured
        self.on_call: Optional[Callable[[Dict[str, Any]], None]] = None

    def complete(self, *, system: Optional[str], user: str, max_tokens: int, temperature: float) -> str:
        call = {"system": system, "user": user, "max_tokens": max_tokens, "temperature": temperature}
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)
        if not self.replies:
            raise UpstreamError("no scripted reply")
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(system or "", user)
        return reply

    def ping(self) -> bool:
        if not self.configured:
            raise UpstreamError("Claude API key is not configured", kind="auth")
        return True


class FakeRedis:
    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self.expirations: Dict[str, int] = {}

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None):
        if nx and key in self._store:
            return False
        self._store[key] = str(value)
        if ex is not None:
            self.expirations[key] = ex
        return True

    def get(self, key: str):
        return self._store.get(key)

    def delete(self, key: str):
        self.expirations.pop(key, None)
        return 1 if self._store.pop(key, None) is not None else 0

    def ping(self) -> bool:
        return True


def generation_reply(posts: List[Dict[str, Any]], *, prose: str = "Here are your posts:") -> str:
    return f"{prose}\n{json.dumps(posts)}\nLet me know if you need changes."


def build_sqlite_session_factory() -> sessionmaker:
    load_models()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@dataclass
class ApiContext:
    client: TestClient
    session_factory: sessionmaker
    llm: FakeLLM
    session_store: InMemoryGenerationSessionStore


@pytest.fixture
def session_factory() -> sessionmaker:
    return build_sqlite_session_factory()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def api(monkeypatch, session_factory, fake_llm) -> ApiContext:
    monkeypatch.setenv("TRANSLATION_BATCH_DELAY_SECONDS", "0")
    monkeypatch.setenv("PROGRESS_POLL_INTERVAL_SECONDS", "0.01")
    get_settings.cache_clear()

    session_store = InMemoryGenerationSessionStore(ttl_seconds=3600)

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api_main.app.dependency_overrides[get_session] = override_get_session
    api_main.app.dependency_overrides[get_background_session_factory] = lambda: session_factory
    api_main.app.dependency_overrides[get_llm_client] = lambda: fake_llm
    api_main.app.dependency_overrides[get_session_store] = lambda: session_store

    yield ApiContext(
        client=TestClient(api_main.app),
        session_factory=session_factory,
        llm=fake_llm,
        session_store=session_store,
    )

    api_main.app.dependency_overrides.clear()
    get_settings.cache_clear()
