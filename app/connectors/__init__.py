"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.google_auth import GoogleTokenExchanger, TokenExchangeError
from app.connectors.indexing_api_connector import IndexingAPIConnector
from app.connectors.url_inspection_connector import UrlInspectionConnector

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "GoogleTokenExchanger",
    "IndexingAPIConnector",
    "TokenExchangeError",
    "UrlInspectionConnector",
]
