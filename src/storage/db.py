"""Database engines and sessions: one pool for request handlers, one for translation jobs."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Generator, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.core.config import get_settings


Base = declarative_base()


def _engine_options(database_url: str, *, pool_size: Optional[int] = None) -> Dict[str, object]:
    options: Dict[str, object] = {"pool_pre_ping": True, "future": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    elif pool_size is not None:
        options["pool_size"] = pool_size
        options["max_overflow"] = 0
    return options


def _build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    database_url = get_settings().database_url
    return create_engine(database_url, **_engine_options(database_url))


@lru_cache(maxsize=1)
def get_background_engine() -> Engine:
    """
    Engine for translation jobs that keep running after the HTTP response.

    It has its own fixed-size pool (`BACKGROUND_DB_POOL_SIZE`, no overflow)
    and recycles connections after `BACKGROUND_DB_POOL_RECYCLE_SECONDS`,
    since a job can hold a connection across several LLM round trips.
    """
    settings = get_settings()
    options = _engine_options(settings.database_url, pool_size=settings.background_db_pool_size)
    options["pool_recycle"] = settings.background_db_pool_recycle_seconds
    return create_engine(settings.database_url, **options)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return _build_session_factory(get_engine())


@lru_cache(maxsize=1)
def get_background_session_factory() -> sessionmaker:
    return _build_session_factory(get_background_engine())


def get_session() -> Generator[Session, None, None]:
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def test_connection() -> Tuple[bool, Optional[str]]:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return False, str(exc)
    return True, None


def load_models() -> None:
    """Register the postcard and translation-job tables on `Base.metadata`."""

    import src.storage.models  # noqa: F401
