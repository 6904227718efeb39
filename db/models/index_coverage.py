"""
db/models/index_coverage.py

Latest URL Inspection result per (project, url).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, PortableJSON, utcnow


class IndexCoverage(Base):
    __tablename__ = "index_coverage"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
    )
    verdict: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="VERDICT_UNSPECIFIED",
    )
    coverage_state: Mapped[str | None] = mapped_column(String(255), nullable=True)
    robots_txt_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    indexing_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    page_fetch_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    crawled_as: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_crawl_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    referring_urls: Mapped[list[Any] | None] = mapped_column(
        PortableJSON,
        nullable=True,
    )
    sitemap: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    inspected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("project_id", "url", name="uq_index_coverage_project_id_url"),
    )
