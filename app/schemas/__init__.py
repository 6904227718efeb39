"""
app/schemas package marker.
"""

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

__all__ = [
    "CoverageListResponse",
    "CoverageScanResponse",
    "DispatchResultResponse",
    "DispatchSummaryResponse",
    "IndexCoverageResponse",
    "IndexingHistoryResponse",
    "IndexingRequestResponse",
    "InventoryItemResponse",
    "InventoryResponse",
    "NotificationStatusResponse",
    "RebalanceSummaryResponse",
    "SubmitRequest",
    "UrlListRequest",
]
