"""
app/repositories/indexing_request_repository.py

Outcome log persistence and "latest status per URL" queries.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from app.domain.indexing import DispatchOutcome
from db.models.indexing_request import IndexingRequest, OperationType, OutcomeStatus


class IndexingRequestRepository:
    """
    Append-mostly store of dispatch outcomes.

    Implements the dispatcher's recorder interface through `record`.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def record(self, outcome: DispatchOutcome) -> IndexingRequest:
        row = IndexingRequest(
            project_id=outcome.project_id,
            url=outcome.url,
            operation=outcome.operation,
            request_type=outcome.request_type,
            credential_email=outcome.credential_email,
            status=outcome.status,
            response_code=outcome.response_code,
            response_message=outcome.response_message,
            fail_reason=outcome.fail_reason,
            retries=outcome.retries,
            recorded_at=outcome.recorded_at,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def update_in_place(self, request_id: int, outcome: DispatchOutcome) -> bool:
        """
        Overwrite a row that is still quota_exhausted. Returns False when the
        row changed status in the meantime and nothing was updated.
        """

        stmt = (
            update(IndexingRequest)
            .where(
                IndexingRequest.id == request_id,
                IndexingRequest.project_id == outcome.project_id,
                IndexingRequest.status == OutcomeStatus.QUOTA_EXHAUSTED,
            )
            .values(
                status=outcome.status,
                credential_email=outcome.credential_email,
                response_code=outcome.response_code,
                response_message=outcome.response_message,
                fail_reason=outcome.fail_reason,
                retries=IndexingRequest.retries + 1,
                recorded_at=outcome.recorded_at,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(stmt)
        return result.rowcount == 1

    def get(self, *, project_id: uuid.UUID, request_id: int) -> IndexingRequest | None:
        row = self._session.get(IndexingRequest, request_id)
        if row is None or row.project_id != project_id:
            return None
        return row

    def list_history(
        self,
        *,
        project_id: uuid.UUID,
        limit: int = 200,
        operation: str | None = None,
    ) -> list[IndexingRequest]:
        stmt: Select[tuple[IndexingRequest]] = select(IndexingRequest).where(
            IndexingRequest.project_id == project_id
        )
        if operation:
            stmt = stmt.where(IndexingRequest.operation == operation)
        stmt = stmt.order_by(IndexingRequest.recorded_at.desc(), IndexingRequest.id.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def latest_status_per_url(
        self,
        *,
        project_id: uuid.UUID,
        operation: str = OperationType.SUBMIT,
        urls: Sequence[str] | None = None,
    ) -> dict[str, IndexingRequest]:
        """
        Return the most recent row for each URL, resolved in the database.
        """

        stmt = self._latest_rows_stmt(project_id=project_id, operation=operation, urls=urls)
        return {row.url: row for row in self._session.scalars(stmt).all()}

    def urls_with_latest_status(
        self,
        *,
        project_id: uuid.UUID,
        status: str,
        operation: str = OperationType.SUBMIT,
    ) -> list[IndexingRequest]:
        """
        Latest rows whose status is exactly `status`, oldest first.
        """

        latest = self._latest_rows_stmt(project_id=project_id, operation=operation).subquery()
        stmt = (
            select(IndexingRequest)
            .join(latest, IndexingRequest.id == latest.c.id)
            .where(IndexingRequest.status == status)
            .order_by(IndexingRequest.recorded_at.asc(), IndexingRequest.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def _latest_rows_stmt(
        self,
        *,
        project_id: uuid.UUID,
        operation: str,
        urls: Sequence[str] | None = None,
    ) -> Select[tuple[IndexingRequest]]:
        ranked = select(
            IndexingRequest.id.label("id"),
            func.row_number()
            .over(
                partition_by=IndexingRequest.url,
                order_by=(IndexingRequest.recorded_at.desc(), IndexingRequest.id.desc()),
            )
            .label("rank"),
        ).where(
            IndexingRequest.project_id == project_id,
            IndexingRequest.operation == operation,
        )
        if urls is not None:
            ranked = ranked.where(IndexingRequest.url.in_(list(urls)))
        ranked_subquery = ranked.subquery()
        return (
            select(IndexingRequest)
            .join(ranked_subquery, IndexingRequest.id == ranked_subquery.c.id)
            .where(ranked_subquery.c.rank == 1)
        )
