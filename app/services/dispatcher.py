"""
app/services/dispatcher.py

Quota-aware dispatcher that drives a batch of URLs through the Indexing API
(submit) or the URL Inspection API (inspect).

Per URL at batch position ``i``:

  1. no eligible credential -> record quota_exhausted, move on
  2. call with ``eligible[i % len(eligible)]``
  3. success -> count one unit against that credential
  4. quota signal (HTTP 429) -> mark the credential exhausted and make exactly
     one more call with the next eligible credential
  5. any other failure -> record failed, no retry

URLs are processed strictly in order so every selection sees the eligibility
changes caused by the URLs before it.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from typing import Protocol

from app.config import IndexingSettings
from app.connectors.base import ConnectorRequestError
from app.domain.indexing import (
    ALL_CONNECTIONS_EXHAUSTED,
    BATCH_CAPACITY_EXCEEDED,
    VALID_REQUEST_TYPES,
    AuthorizedCredential,
    CallResult,
    DispatchItem,
    DispatchOutcome,
    DispatchSummary,
    RequestType,
    TokenScope,
)
from app.logging_utils import log_event
from app.services.credential_pool import CredentialPool
from app.services.quota_tracker import QuotaTracker
from db.models.indexing_request import OperationType, OutcomeStatus

logger = logging.getLogger(__name__)


class SubmitClient(Protocol):
    def submit(self, access_token: str, url: str, request_type: str) -> CallResult: ...


class InspectClient(Protocol):
    def inspect(self, access_token: str, url: str, site_url: str) -> CallResult: ...


OutcomeRecorder = Callable[[DispatchItem, DispatchOutcome], None]


def normalize_urls(urls: Sequence[str]) -> list[str]:
    """
    Strip, drop blanks and de-duplicate while keeping first-seen order.
    """

    seen: set[str] = set()
    normalized: list[str] = []
    for raw in urls:
        url = (raw or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        normalized.append(url)
    return normalized


class IndexingDispatcher:
    """
    Runs dispatch batches. Each call to `dispatch` is one run with its own
    QuotaTracker; nothing carries over between runs.
    """

    def __init__(
        self,
        *,
        credential_pool: CredentialPool,
        submit_client: SubmitClient,
        inspect_client: InspectClient,
        settings: IndexingSettings,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credential_pool = credential_pool
        self._submit_client = submit_client
        self._inspect_client = inspect_client
        self._settings = settings
        self._sleep = sleep
        self._monotonic = monotonic
        self._last_call_monotonic: float | None = None

    def submit(
        self,
        *,
        project_id: uuid.UUID,
        urls: Sequence[str],
        recorder: OutcomeRecorder,
        request_type: str = RequestType.URL_UPDATED,
    ) -> DispatchSummary:
        if request_type not in VALID_REQUEST_TYPES:
            allowed = ", ".join(sorted(VALID_REQUEST_TYPES))
            raise ValueError(f"Unsupported request_type '{request_type}'. Allowed values: {allowed}.")
        items = [DispatchItem(url=url, request_type=request_type) for url in self._require_urls(urls)]
        return self.dispatch(
            project_id=project_id,
            operation=OperationType.SUBMIT,
            items=items,
            recorder=recorder,
        )

    def inspect(
        self,
        *,
        project_id: uuid.UUID,
        urls: Sequence[str],
        recorder: OutcomeRecorder,
    ) -> DispatchSummary:
        items = [DispatchItem(url=url) for url in self._require_urls(urls)]
        return self.dispatch(
            project_id=project_id,
            operation=OperationType.INSPECT,
            items=items,
            recorder=recorder,
        )

    def dispatch(
        self,
        *,
        project_id: uuid.UUID,
        operation: str,
        items: Sequence[DispatchItem],
        recorder: OutcomeRecorder,
    ) -> DispatchSummary:
        """
        Run one batch. Raises CredentialsNotConfiguredError or
        NoAuthorizedCredentialsError before any URL is attempted.
        """

        scope, cap = self._operation_limits(operation)
        credentials = self._credential_pool.list_credentials(project_id)
        authorized, dropped = self._credential_pool.authorize_all(credentials, scope)
        tracker = QuotaTracker(authorized, daily_unit_cap=cap)
        self._last_call_monotonic = None

        capacity = tracker.batch_capacity()
        accepted = list(items[:capacity])
        overflow = list(items[capacity:])
        summary = DispatchSummary(operation=operation, dropped_credentials=dropped)

        log_event(
            logger,
            logging.INFO,
            "dispatch_started",
            project_id=project_id,
            operation=operation,
            urls=len(items),
            capacity=capacity,
            credentials=[credential.identifier for credential in authorized],
            dropped_credentials=dropped,
        )

        for index, item in enumerate(accepted):
            outcome = self._dispatch_one(
                project_id=project_id,
                operation=operation,
                index=index,
                item=item,
                tracker=tracker,
            )
            recorder(item, outcome)
            summary.results.append(outcome)

        for item in overflow:
            outcome = self._build_outcome(
                project_id=project_id,
                operation=operation,
                item=item,
                result=CallResult(status=OutcomeStatus.QUOTA_EXHAUSTED, fail_reason=BATCH_CAPACITY_EXCEEDED),
            )
            recorder(item, outcome)
            summary.results.append(outcome)
            summary.not_submitted.append(item.url)

        summary.credentials_used = tracker.usage()
        log_event(
            logger,
            logging.INFO,
            "dispatch_completed",
            project_id=project_id,
            operation=operation,
            succeeded=summary.succeeded,
            failed=summary.failed,
            quota_exhausted=summary.quota_exhausted,
            not_submitted=len(summary.not_submitted),
            credentials_used=summary.credentials_used,
        )
        return summary

    def _dispatch_one(
        self,
        *,
        project_id: uuid.UUID,
        operation: str,
        index: int,
        item: DispatchItem,
        tracker: QuotaTracker,
    ) -> DispatchOutcome:
        credential = tracker.select(index)
        if credential is None:
            return self._build_outcome(
                project_id=project_id,
                operation=operation,
                item=item,
                result=CallResult(status=OutcomeStatus.QUOTA_EXHAUSTED, fail_reason=ALL_CONNECTIONS_EXHAUSTED),
            )

        result = self._call(operation, credential, item)
        if result.is_quota_exhausted:
            tracker.mark_exhausted(credential)
            logger.warning(
                "Credential quota exhausted client_email=%s operation=%s used_this_run=%s",
                credential.identifier,
                operation,
                tracker.used(credential),
            )
            fallback = tracker.select(index)
            if fallback is None:
                return self._build_outcome(
                    project_id=project_id,
                    operation=operation,
                    item=item,
                    result=result,
                    credential=credential,
                )
            credential = fallback
            result = self._call(operation, credential, item)
            if result.is_quota_exhausted:
                tracker.mark_exhausted(credential)
                logger.warning(
                    "Fallback credential quota exhausted client_email=%s operation=%s url=%s",
                    credential.identifier,
                    operation,
                    item.url,
                )

        if result.status == OutcomeStatus.SUCCESS:
            tracker.record_use(credential)

        return self._build_outcome(
            project_id=project_id,
            operation=operation,
            item=item,
            result=result,
            credential=credential,
        )

    def _call(self, operation: str, credential: AuthorizedCredential, item: DispatchItem) -> CallResult:
        self._pace(operation)
        try:
            if operation == OperationType.SUBMIT:
                return self._submit_client.submit(
                    credential.access_token,
                    item.url,
                    item.request_type or RequestType.URL_UPDATED,
                )
            return self._inspect_client.inspect(
                credential.access_token,
                item.url,
                credential.credential.site_url,
            )
        except ConnectorRequestError as exc:
            return CallResult(status=OutcomeStatus.FAILED, fail_reason=str(exc))
        except Exception as exc:
            logger.exception(
                "Unhandled dispatch call failure operation=%s client_email=%s url=%s",
                operation,
                credential.identifier,
                item.url,
            )
            return CallResult(status=OutcomeStatus.FAILED, fail_reason=str(exc) or exc.__class__.__name__)

    def _pace(self, operation: str) -> None:
        """
        Keep a fixed minimum interval between consecutive external calls.
        """

        interval = (
            self._settings.submit_pacing_seconds
            if operation == OperationType.SUBMIT
            else self._settings.inspect_pacing_seconds
        )
        now = self._monotonic()
        if self._last_call_monotonic is not None and interval > 0:
            remaining = interval - (now - self._last_call_monotonic)
            if remaining > 0:
                self._sleep(remaining)
        self._last_call_monotonic = self._monotonic()

    def _operation_limits(self, operation: str) -> tuple[str, int]:
        if operation == OperationType.SUBMIT:
            return TokenScope.SUBMIT, self._settings.submit_daily_cap
        if operation == OperationType.INSPECT:
            return TokenScope.INSPECT, self._settings.inspect_daily_cap
        raise ValueError(f"Unsupported operation '{operation}'.")

    @staticmethod
    def _require_urls(urls: Sequence[str]) -> list[str]:
        normalized = normalize_urls(urls)
        if not normalized:
            raise ValueError("At least one URL is required.")
        return normalized

    @staticmethod
    def _build_outcome(
        *,
        project_id: uuid.UUID,
        operation: str,
        item: DispatchItem,
        result: CallResult,
        credential: AuthorizedCredential | None = None,
    ) -> DispatchOutcome:
        return DispatchOutcome(
            project_id=project_id,
            url=item.url,
            operation=operation,
            status=result.status,
            request_type=item.request_type if operation == OperationType.SUBMIT else None,
            credential_email=credential.identifier if credential is not None else None,
            response_code=result.response_code,
            response_message=result.response_message,
            fail_reason=result.fail_reason,
            retries=item.retries,
            inspection=result.inspection,
        )
