"""
app/repositories/index_coverage_repository.py

Upsert and read URL Inspection results keyed by (project, url).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.domain.indexing import InspectionRecord
from db.models.index_coverage import IndexCoverage

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class IndexCoverageRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert(
        self,
        *,
        project_id: uuid.UUID,
        url: str,
        record: InspectionRecord,
        inspected_at: datetime,
    ) -> None:
        values: dict[str, Any] = {
            "verdict": record.verdict,
            "coverage_state": record.coverage_state,
            "robots_txt_state": record.robots_txt_state,
            "indexing_state": record.indexing_state,
            "page_fetch_state": record.page_fetch_state,
            "crawled_as": record.crawled_as,
            "last_crawl_time": record.last_crawl_time,
            "referring_urls": list(record.referring_urls),
            "sitemap": record.sitemap,
            "inspected_at": inspected_at,
        }
        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Coverage upsert is not supported on dialect '{dialect}'.")

        stmt = insert(IndexCoverage).values(
            id=uuid.uuid4(),
            project_id=project_id,
            url=url,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[IndexCoverage.project_id, IndexCoverage.url],
            set_=values,
        )
        self._session.execute(stmt)

    def list_coverage(self, *, project_id: uuid.UUID) -> list[IndexCoverage]:
        stmt = (
            select(IndexCoverage)
            .where(IndexCoverage.project_id == project_id)
            .order_by(IndexCoverage.inspected_at.desc())
        )
        return list(self._session.scalars(stmt).all())

    def inspected_since(self, *, project_id: uuid.UUID, since: datetime) -> set[str]:
        """
        URLs whose last inspection is at or after `since`.
        """

        stmt = select(IndexCoverage.url).where(
            IndexCoverage.project_id == project_id,
            IndexCoverage.inspected_at >= since,
        )
        return set(self._session.scalars(stmt).all())
