"""
app/repositories package marker.
"""

from app.repositories.gsc_credential_repository import GSCCredentialRepository
from app.repositories.index_coverage_repository import IndexCoverageRepository
from app.repositories.indexing_request_repository import IndexingRequestRepository
from app.repositories.site_url_repository import SiteUrlRepository

__all__ = [
    "GSCCredentialRepository",
    "IndexCoverageRepository",
    "IndexingRequestRepository",
    "SiteUrlRepository",
]
