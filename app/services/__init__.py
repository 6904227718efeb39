"""
app/services package marker.
"""

from app.services.credential_pool import (
    CredentialAuthError,
    CredentialPool,
    CredentialPoolError,
    CredentialsNotConfiguredError,
    NoAuthorizedCredentialsError,
)
from app.services.dispatcher import IndexingDispatcher
from app.services.indexing_service import (
    DispatchInProgressError,
    IndexingService,
    OutcomeNotFoundError,
    get_indexing_service,
)
from app.services.quota_tracker import QuotaTracker, select_credential
from app.services.rebalancer import Rebalancer

__all__ = [
    "CredentialAuthError",
    "CredentialPool",
    "CredentialPoolError",
    "CredentialsNotConfiguredError",
    "DispatchInProgressError",
    "IndexingDispatcher",
    "IndexingService",
    "NoAuthorizedCredentialsError",
    "OutcomeNotFoundError",
    "QuotaTracker",
    "Rebalancer",
    "get_indexing_service",
    "select_credential",
]
