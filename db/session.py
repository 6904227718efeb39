"""
db/session.py

Engine and session factory, built on first use so importing models or
running tests against SQLite never requires a PostgreSQL URL.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


@dataclass(frozen=True)
class PoolSettings:
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    recycle_seconds: int = 1800

    @classmethod
    def from_env(cls) -> "PoolSettings":
        defaults = cls()
        return cls(
            echo=os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"},
            pool_size=_int_from_env("DB_POOL_SIZE", defaults.pool_size),
            max_overflow=_int_from_env("DB_MAX_OVERFLOW", defaults.max_overflow),
            recycle_seconds=_int_from_env("DB_POOL_RECYCLE", defaults.recycle_seconds),
        )


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.isdigit() else default


def create_db_engine(database_url: str | None = None, pool_settings: PoolSettings | None = None) -> Engine:
    url = database_url or resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    settings = pool_settings or PoolSettings.from_env()
    return create_engine(
        url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.recycle_seconds,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def _session_factory() -> sessionmaker[Session]:
    # Outcomes are committed one by one during a run; keep loaded rows usable after commit.
    return sessionmaker(bind=get_engine(), class_=Session, autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    return _session_factory()()


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request, closed afterwards.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
