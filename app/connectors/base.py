"""
app/connectors/base.py

Base connector abstraction and shared HTTP mechanics for Google APIs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from app.config import ExternalHTTPSettings
from app.domain.indexing import CallResult
from db.models.indexing_request import OutcomeStatus

logger = logging.getLogger(__name__)

QUOTA_EXHAUSTED_STATUS_CODES = {429}


class ConnectorRequestError(RuntimeError):
    """
    Raised when a request never produced an HTTP response (timeout, DNS, reset).
    """


class BaseConnector:
    """
    Single-attempt HTTP caller. Retrying is the dispatcher's decision, not ours.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        form_body: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Execute one HTTP request and return the response whatever its status.
        """

        try:
            return self._session.request(
                method=method,
                url=url,
                params=params,
                headers=headers,
                json=json_body,
                data=form_body,
                timeout=self._timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning(
                "Connector transport failure source=%s url=%s error=%s",
                self.source,
                url,
                exc,
            )
            raise ConnectorRequestError(f"{self.source}: {exc}") from exc
        except requests.RequestException as exc:
            raise ConnectorRequestError(f"{self.source}: {exc}") from exc

    @staticmethod
    def bearer_headers(access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def parse_json(response: requests.Response) -> dict[str, Any]:
        """
        Parse a JSON object body, tolerating empty or non-JSON error bodies.
        """

        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def error_message(response: requests.Response, payload: dict[str, Any]) -> str:
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        return f"HTTP {response.status_code}"

    def classify_failure(self, response: requests.Response, payload: dict[str, Any]) -> CallResult:
        """
        Map a non-2xx response to a quota_exhausted or failed call result.
        """

        message = self.error_message(response, payload)
        if response.status_code in QUOTA_EXHAUSTED_STATUS_CODES:
            return CallResult(
                status=OutcomeStatus.QUOTA_EXHAUSTED,
                response_code=response.status_code,
                fail_reason=message,
            )
        return CallResult(
            status=OutcomeStatus.FAILED,
            response_code=response.status_code,
            fail_reason=message,
        )

    @staticmethod
    def parse_iso_datetime(value: str | None) -> datetime | None:
        """
        Parse an RFC 3339 timestamp into a timezone-aware datetime.
        """

        if not value:
            return None
        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed
