"""
app/domain package marker.
"""

from app.domain.indexing import (
    AuthorizedCredential,
    CallResult,
    CoverageScanSummary,
    Credential,
    DispatchItem,
    DispatchOutcome,
    DispatchSummary,
    InspectionRecord,
    InventoryItem,
    RebalanceSummary,
    RequestType,
    TokenScope,
)

__all__ = [
    "AuthorizedCredential",
    "CallResult",
    "CoverageScanSummary",
    "Credential",
    "DispatchItem",
    "DispatchOutcome",
    "DispatchSummary",
    "InspectionRecord",
    "InventoryItem",
    "RebalanceSummary",
    "RequestType",
    "TokenScope",
]
