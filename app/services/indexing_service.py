"""
app/services/indexing_service.py

Control surface for indexing: submit, inspect, rebalance, retry and the
read-only inventory/history/coverage views.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import timedelta
from functools import lru_cache
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import (
    IndexingSettings,
    get_external_http_settings,
    get_google_api_settings,
    get_indexing_settings,
)
from app.connectors import (
    ConnectorRequestError,
    GoogleTokenExchanger,
    IndexingAPIConnector,
    UrlInspectionConnector,
)
from app.domain.indexing import (
    CoverageScanSummary,
    DispatchItem,
    DispatchOutcome,
    DispatchSummary,
    InventoryItem,
    RebalanceSummary,
    RequestType,
    TokenScope,
)
from app.repositories import (
    GSCCredentialRepository,
    IndexCoverageRepository,
    IndexingRequestRepository,
    SiteUrlRepository,
)
from app.services.credential_pool import (
    CredentialAuthError,
    CredentialPool,
    NoAuthorizedCredentialsError,
    TokenExchanger,
)
from app.services.dispatcher import (
    IndexingDispatcher,
    InspectClient,
    OutcomeRecorder,
    SubmitClient,
    normalize_urls,
)
from app.services.rebalancer import Rebalancer
from db.base import utcnow
from db.models.index_coverage import IndexCoverage
from db.models.indexing_request import IndexingRequest, OperationType, OutcomeStatus

logger = logging.getLogger(__name__)


class DispatchInProgressError(RuntimeError):
    """
    Raised when a project already has a dispatch run in this process.
    """


class OutcomeNotFoundError(LookupError):
    """
    Raised when a retry references an unknown request id.
    """


class NotificationMetadataClient(Protocol):
    def notification_metadata(self, access_token: str, url: str) -> dict[str, Any]: ...


class ProjectRunGuard:
    """
    Allows at most one dispatch run per project at a time within the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[uuid.UUID] = set()

    @contextmanager
    def hold(self, project_id: uuid.UUID) -> Iterator[None]:
        with self._lock:
            if project_id in self._active:
                raise DispatchInProgressError(
                    f"A dispatch run is already in progress for project {project_id}."
                )
            self._active.add(project_id)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(project_id)


class IndexingService:
    def __init__(
        self,
        *,
        token_exchanger: TokenExchanger,
        submit_client: SubmitClient,
        inspect_client: InspectClient,
        metadata_client: NotificationMetadataClient,
        settings: IndexingSettings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._token_exchanger = token_exchanger
        self._submit_client = submit_client
        self._inspect_client = inspect_client
        self._metadata_client = metadata_client
        self._settings = settings
        self._sleep = sleep
        self._guard = ProjectRunGuard()

    # ------------------------------------------------------------------
    # Dispatch operations
    # ------------------------------------------------------------------

    def submit(
        self,
        *,
        db: Session,
        project_id: uuid.UUID,
        urls: Sequence[str],
        request_type: str = RequestType.URL_UPDATED,
    ) -> DispatchSummary:
        with self._guard.hold(project_id):
            return self._dispatcher(db).submit(
                project_id=project_id,
                urls=urls,
                request_type=request_type,
                recorder=self._append_recorder(db),
            )

    def inspect(
        self,
        *,
        db: Session,
        project_id: uuid.UUID,
        urls: Sequence[str],
    ) -> DispatchSummary:
        with self._guard.hold(project_id):
            return self._dispatcher(db).inspect(
                project_id=project_id,
                urls=urls,
                recorder=self._append_recorder(db),
            )

    def rebalance(self, *, db: Session, project_id: uuid.UUID) -> RebalanceSummary:
        with self._guard.hold(project_id):
            rebalancer = Rebalancer(dispatcher=self._dispatcher(db))
            return rebalancer.rebalance(
                project_id=project_id,
                store=IndexingRequestRepository(db),
                after_record=lambda: self._commit(db),
            )

    def retry(self, *, db: Session, project_id: uuid.UUID, request_id: int) -> DispatchOutcome:
        """
        Re-issue one prior outcome as a new single-URL run.
        """

        prior = IndexingRequestRepository(db).get(project_id=project_id, request_id=request_id)
        if prior is None:
            raise OutcomeNotFoundError(f"Indexing request not found: {request_id}")

        request_type: str | None = None
        if prior.operation == OperationType.SUBMIT:
            request_type = prior.request_type or RequestType.URL_UPDATED
        item = DispatchItem(url=prior.url, request_type=request_type, retries=prior.retries + 1)
        with self._guard.hold(project_id):
            summary = self._dispatcher(db).dispatch(
                project_id=project_id,
                operation=prior.operation,
                items=[item],
                recorder=self._append_recorder(db),
            )
        return summary.results[0]

    def scan_coverage(self, *, db: Session, project_id: uuid.UUID) -> CoverageScanSummary:
        """
        Inspect known URLs whose last inspection is older than the freshness window.
        """

        site_urls = SiteUrlRepository(db).list_urls(project_id=project_id)
        if not site_urls:
            raise ValueError("No URLs found for this project. Import URLs first via sitemaps or URL management.")

        since = utcnow() - timedelta(hours=self._settings.coverage_freshness_hours)
        fresh = IndexCoverageRepository(db).inspected_since(project_id=project_id, since=since)
        stale = [url for url in site_urls if url not in fresh]
        if not stale:
            return CoverageScanSummary(
                inspected=0,
                failed=0,
                quota_exhausted=0,
                remaining=0,
                total=len(site_urls),
                message="All URLs were inspected recently.",
            )

        batch = stale[: self._settings.coverage_scan_batch_size]
        summary = self.inspect(db=db, project_id=project_id, urls=batch)
        return CoverageScanSummary(
            inspected=summary.succeeded,
            failed=summary.failed,
            quota_exhausted=summary.quota_exhausted,
            remaining=len(stale) - len(batch),
            total=len(site_urls),
        )

    def notification_status(
        self,
        *,
        db: Session,
        project_id: uuid.UUID,
        urls: Sequence[str],
    ) -> list[dict[str, Any]]:
        """
        Read Indexing API notification metadata with the default credential.
        """

        normalized = normalize_urls(urls)[: self._settings.notification_status_max_urls]
        if not normalized:
            raise ValueError("At least one URL is required.")

        pool = self._credential_pool(db)
        access_token: str | None = None
        for credential in pool.list_credentials(project_id):
            try:
                access_token = pool.authorize(credential, TokenScope.SUBMIT).access_token
                break
            except CredentialAuthError as exc:
                logger.error(
                    "Notification status authorization failed client_email=%s error=%s",
                    credential.client_email,
                    exc,
                )
        if access_token is None:
            raise NoAuthorizedCredentialsError("Every credential failed authorization.")

        statuses: list[dict[str, Any]] = []
        for index, url in enumerate(normalized):
            if index > 0 and self._settings.submit_pacing_seconds > 0:
                self._sleep(self._settings.submit_pacing_seconds)
            try:
                statuses.append(self._metadata_client.notification_metadata(access_token, url))
            except ConnectorRequestError as exc:
                logger.warning("Notification status lookup failed url=%s error=%s", url, exc)
                statuses.append({"url": url, "error": "Failed to fetch status"})
        return statuses

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def history(
        self,
        *,
        db: Session,
        project_id: uuid.UUID,
        limit: int | None = None,
    ) -> list[IndexingRequest]:
        return IndexingRequestRepository(db).list_history(
            project_id=project_id,
            limit=limit or self._settings.history_limit,
        )

    def list_coverage(self, *, db: Session, project_id: uuid.UUID) -> list[IndexCoverage]:
        return IndexCoverageRepository(db).list_coverage(project_id=project_id)

    def inventory(self, *, db: Session, project_id: uuid.UUID) -> list[InventoryItem]:
        known_urls = SiteUrlRepository(db).list_urls(project_id=project_id)
        latest = IndexingRequestRepository(db).latest_status_per_url(
            project_id=project_id,
            operation=OperationType.SUBMIT,
        )
        coverage = {row.url: row for row in IndexCoverageRepository(db).list_coverage(project_id=project_id)}

        known = set(known_urls)
        extra = sorted((set(latest) | set(coverage)) - known)
        items: list[InventoryItem] = []
        for url in [*known_urls, *extra]:
            outcome = latest.get(url)
            inspection = coverage.get(url)
            items.append(
                InventoryItem(
                    url=url,
                    last_status=outcome.status if outcome else None,
                    last_fail_reason=outcome.fail_reason if outcome else None,
                    last_credential_email=outcome.credential_email if outcome else None,
                    last_recorded_at=outcome.recorded_at if outcome else None,
                    verdict=inspection.verdict if inspection else None,
                    coverage_state=inspection.coverage_state if inspection else None,
                    inspected_at=inspection.inspected_at if inspection else None,
                )
            )
        return items

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _credential_pool(self, db: Session) -> CredentialPool:
        return CredentialPool(
            source=GSCCredentialRepository(db),
            token_exchanger=self._token_exchanger,
        )

    def _dispatcher(self, db: Session) -> IndexingDispatcher:
        return IndexingDispatcher(
            credential_pool=self._credential_pool(db),
            submit_client=self._submit_client,
            inspect_client=self._inspect_client,
            settings=self._settings,
            sleep=self._sleep,
        )

    def _append_recorder(self, db: Session) -> OutcomeRecorder:
        requests_repository = IndexingRequestRepository(db)
        coverage_repository = IndexCoverageRepository(db)

        def record(item: DispatchItem, outcome: DispatchOutcome) -> None:
            requests_repository.record(outcome)
            if outcome.status == OutcomeStatus.SUCCESS and outcome.inspection is not None:
                coverage_repository.upsert(
                    project_id=outcome.project_id,
                    url=outcome.url,
                    record=outcome.inspection,
                    inspected_at=outcome.recorded_at,
                )
            self._commit(db)

        return record

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to persist indexing outcome error=%s", exc)
            raise


@lru_cache(maxsize=1)
def get_indexing_service() -> IndexingService:
    """
    Build and cache the indexing service.
    """

    http_settings = get_external_http_settings()
    api_settings = get_google_api_settings()
    indexing_connector = IndexingAPIConnector(api_settings=api_settings, http_settings=http_settings)
    return IndexingService(
        token_exchanger=GoogleTokenExchanger(api_settings=api_settings, http_settings=http_settings),
        submit_client=indexing_connector,
        inspect_client=UrlInspectionConnector(api_settings=api_settings, http_settings=http_settings),
        metadata_client=indexing_connector,
        settings=get_indexing_settings(),
    )
