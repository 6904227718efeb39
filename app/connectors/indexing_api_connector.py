"""
app/connectors/indexing_api_connector.py

Google Indexing API: URL notifications (submit) and notification metadata.
"""

from __future__ import annotations

from typing import Any

import requests

from app.config import ExternalHTTPSettings, GoogleAPISettings
from app.connectors.base import BaseConnector
from app.domain.indexing import CallResult
from db.models.indexing_request import OutcomeStatus


class IndexingAPIConnector(BaseConnector):
    """
    Publishes URL_UPDATED / URL_DELETED notifications.
    """

    def __init__(
        self,
        *,
        api_settings: GoogleAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="google_indexing", http_settings=http_settings, session=session)
        self._publish_url = api_settings.indexing_publish_url
        self._metadata_url = api_settings.indexing_metadata_url

    def submit(self, access_token: str, url: str, request_type: str) -> CallResult:
        """
        Publish one notification. Raises ConnectorRequestError on transport failure.
        """

        response = self._request(
            method="POST",
            url=self._publish_url,
            headers=self.bearer_headers(access_token),
            json_body={"url": url, "type": request_type},
        )
        payload = self.parse_json(response)
        if not response.ok:
            return self.classify_failure(response, payload)

        notified_type = request_type
        metadata = payload.get("urlNotificationMetadata")
        if isinstance(metadata, dict) and isinstance(metadata.get("latestUpdate"), dict):
            notified_type = metadata["latestUpdate"].get("type") or request_type
        return CallResult(
            status=OutcomeStatus.SUCCESS,
            response_code=response.status_code,
            response_message=notified_type,
        )

    def notification_metadata(self, access_token: str, url: str) -> dict[str, Any]:
        """
        Return the latest notification metadata Google holds for a URL.
        """

        response = self._request(
            method="GET",
            url=self._metadata_url,
            params={"url": url},
            headers=self.bearer_headers(access_token),
        )
        payload = self.parse_json(response)
        if not response.ok:
            return {"url": url, "error": self.error_message(response, payload), "response_code": response.status_code}
        return {"url": url, **payload}
