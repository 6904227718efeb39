"""
db/models/indexing_request.py

Outcome log of submit and inspect calls, one row per URL per attempt.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, PortableBigInt, utcnow


class OperationType:
    SUBMIT = "submit"
    INSPECT = "inspect"


class OutcomeStatus:
    SUCCESS = "success"
    FAILED = "failed"
    QUOTA_EXHAUSTED = "quota_exhausted"


class IndexingRequest(Base):
    """
    Append-mostly outcome row.

    For a given (project_id, operation, url) the row with the greatest
    recorded_at (then id) is the current status of that URL. Rows are only
    updated in place when a rebalance sweep turns a quota_exhausted row into
    a success.
    """

    __tablename__ = "indexing_requests"

    id: Mapped[int] = mapped_column(
        PortableBigInt,
        primary_key=True,
        autoincrement=True,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    operation: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=OperationType.SUBMIT,
        comment="submit, inspect",
    )
    request_type: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="URL_UPDATED or URL_DELETED for submit rows",
    )
    credential_email: Mapped[str | None] = mapped_column(
        String(320),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="success, failed, quota_exhausted",
    )
    response_code: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    response_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    fail_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    retries: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index(
            "ix_indexing_requests_latest_lookup",
            "project_id",
            "operation",
            "url",
            "recorded_at",
        ),
        Index("ix_indexing_requests_project_id_recorded_at", "project_id", "recorded_at"),
    )
