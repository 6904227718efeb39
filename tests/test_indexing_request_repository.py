"""
tests/test_indexing_request_repository.py

IndexingRequestRepository against an in-memory SQLite database.
"""

from __future__ import annotations

import random
import uuid
from datetime import timedelta

from sqlalchemy import func, select

from app.domain.indexing import DispatchOutcome, RequestType
from app.repositories import IndexingRequestRepository
from db.models.indexing_request import IndexingRequest, OperationType, OutcomeStatus
from tests.fakes import BASE_TIME


def _outcome(project_id, url, status, *, minutes=0, operation=OperationType.SUBMIT, retries=0) -> DispatchOutcome:
    return DispatchOutcome(
        project_id=project_id,
        url=url,
        operation=operation,
        status=status,
        request_type=RequestType.URL_UPDATED if operation == OperationType.SUBMIT else None,
        credential_email="sa0@proj.iam.gserviceaccount.com",
        response_code=429 if status == OutcomeStatus.QUOTA_EXHAUSTED else 200,
        retries=retries,
        recorded_at=BASE_TIME + timedelta(minutes=minutes),
    )


class TestRecordAndHistory:
    def test_record_appends(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)

        first = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.SUCCESS))
        second = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.FAILED, minutes=1))

        assert first.id != second.id
        assert db_session.scalar(select(func.count()).select_from(IndexingRequest)) == 2

    def test_history_is_newest_first_and_limited(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        for minute in range(5):
            repository.record(_outcome(project_id, f"https://example.com/{minute}", OutcomeStatus.SUCCESS, minutes=minute))
        repository.record(_outcome(uuid.uuid4(), "https://other.com/", OutcomeStatus.SUCCESS, minutes=10))

        rows = repository.list_history(project_id=project_id, limit=3)

        assert [row.url for row in rows] == ["https://example.com/4", "https://example.com/3", "https://example.com/2"]

    def test_get_is_scoped_to_project(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        row = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.SUCCESS))

        assert repository.get(project_id=project_id, request_id=row.id) is row
        assert repository.get(project_id=uuid.uuid4(), request_id=row.id) is None
        assert repository.get(project_id=project_id, request_id=row.id + 100) is None


class TestLatestStatus:
    def test_latest_row_wins_regardless_of_insert_order(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        url = "https://example.com/busy"
        minutes = list(range(2000))
        random.Random(7).shuffle(minutes)
        for minute in minutes:
            status = OutcomeStatus.SUCCESS if minute == 1999 else OutcomeStatus.QUOTA_EXHAUSTED
            repository.record(_outcome(project_id, url, status, minutes=minute))

        latest = repository.latest_status_per_url(project_id=project_id)

        assert list(latest) == [url]
        assert latest[url].status == OutcomeStatus.SUCCESS

    def test_timestamp_tie_breaks_on_id(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        url = "https://example.com/tie"
        repository.record(_outcome(project_id, url, OutcomeStatus.QUOTA_EXHAUSTED))
        last = repository.record(_outcome(project_id, url, OutcomeStatus.FAILED))

        assert repository.latest_status_per_url(project_id=project_id)[url].id == last.id

    def test_operations_are_tracked_separately(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        url = "https://example.com/a"
        repository.record(_outcome(project_id, url, OutcomeStatus.QUOTA_EXHAUSTED, minutes=0))
        repository.record(_outcome(project_id, url, OutcomeStatus.SUCCESS, minutes=5, operation=OperationType.INSPECT))

        submit_latest = repository.latest_status_per_url(project_id=project_id, operation=OperationType.SUBMIT)
        inspect_latest = repository.latest_status_per_url(project_id=project_id, operation=OperationType.INSPECT)

        assert submit_latest[url].status == OutcomeStatus.QUOTA_EXHAUSTED
        assert inspect_latest[url].status == OutcomeStatus.SUCCESS

    def test_url_filter(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        for url in ("https://example.com/a", "https://example.com/b"):
            repository.record(_outcome(project_id, url, OutcomeStatus.SUCCESS))

        latest = repository.latest_status_per_url(project_id=project_id, urls=["https://example.com/b"])

        assert list(latest) == ["https://example.com/b"]

    def test_urls_with_latest_status_ignores_superseded_rows(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        repository.record(_outcome(project_id, "https://example.com/recovered", OutcomeStatus.QUOTA_EXHAUSTED, minutes=0))
        repository.record(_outcome(project_id, "https://example.com/recovered", OutcomeStatus.SUCCESS, minutes=1))
        repository.record(_outcome(project_id, "https://example.com/later", OutcomeStatus.QUOTA_EXHAUSTED, minutes=3))
        repository.record(_outcome(project_id, "https://example.com/stuck", OutcomeStatus.SUCCESS, minutes=0))
        repository.record(_outcome(project_id, "https://example.com/stuck", OutcomeStatus.QUOTA_EXHAUSTED, minutes=2))

        rows = repository.urls_with_latest_status(project_id=project_id, status=OutcomeStatus.QUOTA_EXHAUSTED)

        assert [row.url for row in rows] == ["https://example.com/stuck", "https://example.com/later"]


class TestUpdateInPlace:
    def test_updates_quota_exhausted_row(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        row = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.QUOTA_EXHAUSTED))
        success = _outcome(project_id, "https://example.com/a", OutcomeStatus.SUCCESS, minutes=60, retries=1)

        assert repository.update_in_place(row.id, success) is True

        db_session.refresh(row)
        assert row.status == OutcomeStatus.SUCCESS
        assert row.response_code == 200
        assert row.retries == 1
        assert db_session.scalar(select(func.count()).select_from(IndexingRequest)) == 1

    def test_leaves_other_statuses_alone(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        row = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.FAILED))

        updated = repository.update_in_place(
            row.id,
            _outcome(project_id, "https://example.com/a", OutcomeStatus.SUCCESS, minutes=5),
        )

        assert updated is False
        db_session.refresh(row)
        assert row.status == OutcomeStatus.FAILED

    def test_scoped_to_project(self, db_session, project_id) -> None:
        repository = IndexingRequestRepository(db_session)
        row = repository.record(_outcome(project_id, "https://example.com/a", OutcomeStatus.QUOTA_EXHAUSTED))

        updated = repository.update_in_place(
            row.id,
            _outcome(uuid.uuid4(), "https://example.com/a", OutcomeStatus.SUCCESS, minutes=5),
        )

        assert updated is False
