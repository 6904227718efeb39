"""
app/connectors/url_inspection_connector.py

Search Console URL Inspection API.
"""

from __future__ import annotations

from typing import Any

import requests

from app.config import ExternalHTTPSettings, GoogleAPISettings
from app.connectors.base import BaseConnector
from app.domain.indexing import CallResult, InspectionRecord
from db.models.indexing_request import OutcomeStatus


class UrlInspectionConnector(BaseConnector):
    def __init__(
        self,
        *,
        api_settings: GoogleAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="google_url_inspection", http_settings=http_settings, session=session)
        self._inspect_url = api_settings.url_inspection_url

    def inspect(self, access_token: str, url: str, site_url: str) -> CallResult:
        """
        Inspect one URL of `site_url`. Raises ConnectorRequestError on transport failure.
        """

        response = self._request(
            method="POST",
            url=self._inspect_url,
            headers=self.bearer_headers(access_token),
            json_body={"inspectionUrl": url, "siteUrl": site_url},
        )
        payload = self.parse_json(response)
        if not response.ok:
            return self.classify_failure(response, payload)

        record = self._normalize_index_status(payload)
        return CallResult(
            status=OutcomeStatus.SUCCESS,
            response_code=response.status_code,
            response_message=record.verdict,
            inspection=record,
        )

    def _normalize_index_status(self, payload: dict[str, Any]) -> InspectionRecord:
        result = payload.get("inspectionResult")
        index_status = result.get("indexStatusResult") if isinstance(result, dict) else None
        if not isinstance(index_status, dict):
            return InspectionRecord()

        referring = index_status.get("referringUrls")
        sitemaps = index_status.get("sitemap")
        return InspectionRecord(
            verdict=index_status.get("verdict") or "VERDICT_UNSPECIFIED",
            coverage_state=index_status.get("coverageState"),
            robots_txt_state=index_status.get("robotsTxtState"),
            indexing_state=index_status.get("indexingState"),
            page_fetch_state=index_status.get("pageFetchState"),
            crawled_as=index_status.get("crawledAs"),
            last_crawl_time=self.parse_iso_datetime(index_status.get("lastCrawlTime")),
            referring_urls=tuple(str(item) for item in referring) if isinstance(referring, list) else (),
            sitemap=str(sitemaps[0]) if isinstance(sitemaps, list) and sitemaps else None,
        )
