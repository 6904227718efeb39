"""
app/repositories/site_url_repository.py

Read access to a project's known URLs.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.site_url import SiteUrl


class SiteUrlRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_urls(self, *, project_id: uuid.UUID, limit: int | None = None) -> list[str]:
        stmt = (
            select(SiteUrl.url)
            .where(SiteUrl.project_id == project_id)
            .order_by(SiteUrl.created_at.asc(), SiteUrl.url.asc())
        )
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
