"""
app/schemas/indexing.py

Request and response schemas for indexing operations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1)
    request_type: Literal["URL_UPDATED", "URL_DELETED"] = "URL_UPDATED"


class UrlListRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1)


class DispatchResultResponse(BaseModel):
    """
    Per-URL result of one dispatch run.
    """

    url: str
    status: str
    credential_email: str | None = None
    response_code: int | None = None
    response_message: str | None = None
    fail_reason: str | None = None


class DispatchSummaryResponse(BaseModel):
    operation: str
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    quota_exhausted: int = Field(..., ge=0)
    not_submitted: list[str] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    credentials_used: dict[str, int] = Field(default_factory=dict)
    dropped_credentials: list[str] = Field(default_factory=list)
    results: list[DispatchResultResponse] = Field(default_factory=list)


class RebalanceSummaryResponse(BaseModel):
    rebalanced: int = Field(..., ge=0)
    still_exhausted: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    credentials_used: dict[str, int] = Field(default_factory=dict)
    message: str | None = None


class IndexingRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    operation: str
    request_type: str | None = None
    credential_email: str | None = None
    status: str
    response_code: int | None = None
    response_message: str | None = None
    fail_reason: str | None = None
    retries: int
    recorded_at: datetime


class IndexingHistoryResponse(BaseModel):
    rows: list[IndexingRequestResponse] = Field(default_factory=list)


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    last_status: str | None = None
    last_fail_reason: str | None = None
    last_credential_email: str | None = None
    last_recorded_at: datetime | None = None
    verdict: str | None = None
    coverage_state: str | None = None
    inspected_at: datetime | None = None


class InventoryResponse(BaseModel):
    items: list[InventoryItemResponse] = Field(default_factory=list)


class NotificationStatusResponse(BaseModel):
    statuses: list[dict[str, Any]] = Field(default_factory=list)


class IndexCoverageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    verdict: str
    coverage_state: str | None = None
    robots_txt_state: str | None = None
    indexing_state: str | None = None
    page_fetch_state: str | None = None
    crawled_as: str | None = None
    last_crawl_time: datetime | None = None
    referring_urls: list[str] | None = None
    sitemap: str | None = None
    inspected_at: datetime


class CoverageListResponse(BaseModel):
    rows: list[IndexCoverageResponse] = Field(default_factory=list)


class CoverageScanResponse(BaseModel):
    inspected: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    quota_exhausted: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    message: str | None = None
