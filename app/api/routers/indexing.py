"""
app/api/routers/indexing.py

Indexing dispatch and inventory HTTP endpoints.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.domain.indexing import DispatchOutcome, DispatchSummary
from app.schemas.indexing import (
    CoverageListResponse,
    CoverageScanResponse,
    DispatchResultResponse,
    DispatchSummaryResponse,
    IndexCoverageResponse,
    IndexingHistoryResponse,
    IndexingRequestResponse,
    InventoryItemResponse,
    InventoryResponse,
    NotificationStatusResponse,
    RebalanceSummaryResponse,
    SubmitRequest,
    UrlListRequest,
)
from app.services.credential_pool import CredentialsNotConfiguredError, NoAuthorizedCredentialsError
from app.services.indexing_service import (
    DispatchInProgressError,
    IndexingService,
    OutcomeNotFoundError,
    get_indexing_service,
)
from db.session import get_db

router = APIRouter(prefix="/projects/{project_id}", tags=["indexing"])


@contextmanager
def _translate_errors() -> Iterator[None]:
    """
    Map domain failures to HTTP errors. Per-URL failures never get here.
    """

    try:
        yield
    except (CredentialsNotConfiguredError, OutcomeNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NoAuthorizedCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except DispatchInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/indexing/submit", response_model=DispatchSummaryResponse)
def submit_urls(
    project_id: UUID,
    payload: SubmitRequest,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> DispatchSummaryResponse:
    """
    Submit URLs for crawling across the project's pooled credentials.
    """

    with _translate_errors():
        summary = indexing_service.submit(
            db=db,
            project_id=project_id,
            urls=payload.urls,
            request_type=payload.request_type,
        )
    return _to_summary_response(summary)


@router.post("/indexing/inspect", response_model=DispatchSummaryResponse)
def inspect_urls(
    project_id: UUID,
    payload: UrlListRequest,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> DispatchSummaryResponse:
    with _translate_errors():
        summary = indexing_service.inspect(db=db, project_id=project_id, urls=payload.urls)
    return _to_summary_response(summary)


@router.post("/indexing/rebalance", response_model=RebalanceSummaryResponse)
def rebalance(
    project_id: UUID,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> RebalanceSummaryResponse:
    """
    Retry every URL whose latest outcome is quota_exhausted.
    """

    with _translate_errors():
        summary = indexing_service.rebalance(db=db, project_id=project_id)
    return RebalanceSummaryResponse(
        rebalanced=summary.rebalanced,
        still_exhausted=summary.still_exhausted,
        failed=summary.failed,
        total=summary.total,
        credentials_used=summary.credentials_used,
        message=summary.message,
    )


@router.post("/indexing/requests/{request_id}/retry", response_model=DispatchResultResponse)
def retry_request(
    project_id: UUID,
    request_id: int,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> DispatchResultResponse:
    with _translate_errors():
        outcome = indexing_service.retry(db=db, project_id=project_id, request_id=request_id)
    return _to_result_response(outcome)


@router.post("/indexing/notification-status", response_model=NotificationStatusResponse)
def notification_status(
    project_id: UUID,
    payload: UrlListRequest,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> NotificationStatusResponse:
    with _translate_errors():
        statuses = indexing_service.notification_status(db=db, project_id=project_id, urls=payload.urls)
    return NotificationStatusResponse(statuses=statuses)


@router.get("/indexing/history", response_model=IndexingHistoryResponse)
def get_history(
    project_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=1000, description="Max rows returned, newest first"),
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> IndexingHistoryResponse:
    rows = indexing_service.history(db=db, project_id=project_id, limit=limit)
    return IndexingHistoryResponse(rows=[IndexingRequestResponse.model_validate(row) for row in rows])


@router.get("/indexing/inventory", response_model=InventoryResponse)
def get_inventory(
    project_id: UUID,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> InventoryResponse:
    items = indexing_service.inventory(db=db, project_id=project_id)
    return InventoryResponse(items=[InventoryItemResponse.model_validate(item) for item in items])


@router.post("/coverage/scan", response_model=CoverageScanResponse)
def scan_coverage(
    project_id: UUID,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> CoverageScanResponse:
    with _translate_errors():
        summary = indexing_service.scan_coverage(db=db, project_id=project_id)
    return CoverageScanResponse(
        inspected=summary.inspected,
        failed=summary.failed,
        quota_exhausted=summary.quota_exhausted,
        remaining=summary.remaining,
        total=summary.total,
        message=summary.message,
    )


@router.get("/coverage", response_model=CoverageListResponse)
def list_coverage(
    project_id: UUID,
    db: Session = Depends(get_db),
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> CoverageListResponse:
    rows = indexing_service.list_coverage(db=db, project_id=project_id)
    return CoverageListResponse(rows=[IndexCoverageResponse.model_validate(row) for row in rows])


def _to_result_response(outcome: DispatchOutcome) -> DispatchResultResponse:
    return DispatchResultResponse(
        url=outcome.url,
        status=outcome.status,
        credential_email=outcome.credential_email,
        response_code=outcome.response_code,
        response_message=outcome.response_message,
        fail_reason=outcome.fail_reason,
    )


def _to_summary_response(summary: DispatchSummary) -> DispatchSummaryResponse:
    return DispatchSummaryResponse(
        operation=summary.operation,
        succeeded=summary.succeeded,
        failed=summary.failed,
        quota_exhausted=summary.quota_exhausted,
        not_submitted=summary.not_submitted,
        total=summary.total,
        credentials_used=summary.credentials_used,
        dropped_credentials=summary.dropped_credentials,
        results=[_to_result_response(outcome) for outcome in summary.results],
    )
