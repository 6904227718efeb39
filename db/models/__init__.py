"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.gsc_credential import GSCCredential
from db.models.index_coverage import IndexCoverage
from db.models.indexing_request import IndexingRequest, OperationType, OutcomeStatus
from db.models.site_url import SiteUrl

__all__ = [
    "GSCCredential",
    "IndexCoverage",
    "IndexingRequest",
    "OperationType",
    "OutcomeStatus",
    "SiteUrl",
]
