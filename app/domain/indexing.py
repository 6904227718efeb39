"""
app/domain/indexing.py

Domain models for indexing dispatch runs.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from db.base import utcnow
from db.models.indexing_request import OutcomeStatus


class TokenScope:
    """
    OAuth scopes for the two external operations. They are not interchangeable.
    """

    SUBMIT = "https://www.googleapis.com/auth/indexing"
    INSPECT = "https://www.googleapis.com/auth/webmasters.readonly"


class RequestType:
    URL_UPDATED = "URL_UPDATED"
    URL_DELETED = "URL_DELETED"


VALID_REQUEST_TYPES: frozenset[str] = frozenset({RequestType.URL_UPDATED, RequestType.URL_DELETED})

ALL_CONNECTIONS_EXHAUSTED = "All connections exhausted"
BATCH_CAPACITY_EXCEEDED = "Not submitted: batch exceeds available daily capacity"


@dataclass(frozen=True)
class Credential:
    """
    Read-only view of a stored service-account credential.
    """

    id: uuid.UUID
    client_email: str
    private_key: str
    site_url: str
    created_at: datetime

    @property
    def identifier(self) -> str:
        return self.client_email


@dataclass(frozen=True)
class AuthorizedCredential:
    credential: Credential
    access_token: str

    @property
    def identifier(self) -> str:
        return self.credential.client_email


@dataclass(frozen=True)
class InspectionRecord:
    """
    Index status reported by the URL Inspection API for one URL.
    """

    verdict: str = "VERDICT_UNSPECIFIED"
    coverage_state: str | None = None
    robots_txt_state: str | None = None
    indexing_state: str | None = None
    page_fetch_state: str | None = None
    crawled_as: str | None = None
    last_crawl_time: datetime | None = None
    referring_urls: tuple[str, ...] = ()
    sitemap: str | None = None


@dataclass(frozen=True)
class CallResult:
    """
    Outcome of one external submit or inspect call.
    """

    status: str
    response_code: int | None = None
    response_message: str | None = None
    fail_reason: str | None = None
    inspection: InspectionRecord | None = None

    @property
    def is_quota_exhausted(self) -> bool:
        return self.status == OutcomeStatus.QUOTA_EXHAUSTED


@dataclass(frozen=True)
class DispatchItem:
    """
    One URL queued for a dispatch run.

    prior_request_id is set by the rebalance sweep so a success can update the
    existing quota_exhausted row instead of appending.
    """

    url: str
    request_type: str | None = None
    prior_request_id: int | None = None
    retries: int = 0


@dataclass(frozen=True)
class DispatchOutcome:
    project_id: uuid.UUID
    url: str
    operation: str
    status: str
    request_type: str | None = None
    credential_email: str | None = None
    response_code: int | None = None
    response_message: str | None = None
    fail_reason: str | None = None
    retries: int = 0
    inspection: InspectionRecord | None = None
    recorded_at: datetime = field(default_factory=utcnow)


@dataclass
class DispatchSummary:
    """
    Result of one dispatch run.
    """

    operation: str
    results: list[DispatchOutcome] = field(default_factory=list)
    not_submitted: list[str] = field(default_factory=list)
    credentials_used: dict[str, int] = field(default_factory=dict)
    dropped_credentials: list[str] = field(default_factory=list)

    def count(self, status: str) -> int:
        return Counter(outcome.status for outcome in self.results)[status]

    @property
    def succeeded(self) -> int:
        return self.count(OutcomeStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    @property
    def quota_exhausted(self) -> int:
        return self.count(OutcomeStatus.QUOTA_EXHAUSTED)

    @property
    def total(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class RebalanceSummary:
    rebalanced: int
    still_exhausted: int
    failed: int
    total: int
    credentials_used: dict[str, int] = field(default_factory=dict)
    message: str | None = None


@dataclass(frozen=True)
class InventoryItem:
    """
    A known URL joined with its latest submit outcome and latest inspection.
    """

    url: str
    last_status: str | None = None
    last_fail_reason: str | None = None
    last_credential_email: str | None = None
    last_recorded_at: datetime | None = None
    verdict: str | None = None
    coverage_state: str | None = None
    inspected_at: datetime | None = None


@dataclass(frozen=True)
class CoverageScanSummary:
    inspected: int
    failed: int
    quota_exhausted: int
    remaining: int
    total: int
    message: str | None = None
