"""
db/models/site_url.py

Known URLs of a project, populated by sitemap and URL imports.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class SiteUrl(Base, TimestampMixin):
    __tablename__ = "site_urls"

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

    __table_args__ = (
        Index("uq_site_urls_project_id_url", "project_id", "url", unique=True),
    )
