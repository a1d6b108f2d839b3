"""Engine/session helpers for the approval and user tables."""
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from api.core.config import get_settings

Base = declarative_base()


def engine_options(url: str) -> dict:
    """Keyword arguments for create_engine.

    Sync routes run in Starlette's threadpool, so a SQLite connection may be
    used by a thread other than the one that opened it.
    """
    options: dict = {"future": True, "pool_pre_ping": True}
    if make_url(url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    return options


@lru_cache
def get_engine():
    settings = get_settings()
    url = (settings.database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to store approval tokens and users.")
    return create_engine(url, **engine_options(url))


@lru_cache
def _get_sessionmaker():
    # Entities are read after the session closes (token/user checks in ApprovalService).
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False, future=True)


@contextmanager
def get_session() -> Session:
    session: Session = _get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()
