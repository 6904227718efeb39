"""
Shared fixtures: an in-memory SQLite database and no-wait dispatch settings.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from app.config import IndexingSettings
from db.base import Base


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings() -> IndexingSettings:
    return IndexingSettings(submit_pacing_seconds=0.0, inspect_pacing_seconds=0.0)


@pytest.fixture()
def project_id() -> uuid.UUID:
    return uuid.uuid4()
