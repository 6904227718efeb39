"""
app/connectors/google_auth.py

Service-account token exchange (OAuth 2.0 JWT bearer grant).
"""

from __future__ import annotations

import logging
import time

import jwt
import requests

from app.config import ExternalHTTPSettings, GoogleAPISettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.indexing import Credential

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class TokenExchangeError(RuntimeError):
    """
    Raised when a credential cannot be exchanged for an access token.
    """


class GoogleTokenExchanger(BaseConnector):
    """
    Mints short-lived bearer tokens from a service account's signing key.
    """

    def __init__(
        self,
        *,
        api_settings: GoogleAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="google_oauth", http_settings=http_settings, session=session)
        self._token_uri = api_settings.token_uri
        self._lifetime_seconds = api_settings.token_lifetime_seconds

    def build_assertion(self, credential: Credential, scope: str, *, issued_at: int | None = None) -> str:
        """
        Sign the RS256 JWT assertion sent to the token endpoint.
        """

        now = int(time.time()) if issued_at is None else issued_at
        claims = {
            "iss": credential.client_email,
            "scope": scope,
            "aud": self._token_uri,
            "iat": now,
            "exp": now + self._lifetime_seconds,
        }
        try:
            return jwt.encode(claims, credential.private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise TokenExchangeError(
                f"Malformed signing key for {credential.client_email}: {exc}"
            ) from exc

    def exchange(self, credential: Credential, scope: str) -> str:
        assertion = self.build_assertion(credential, scope)
        try:
            response = self._request(
                method="POST",
                url=self._token_uri,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                form_body={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
            )
        except ConnectorRequestError as exc:
            raise TokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        payload = self.parse_json(response)
        if not response.ok:
            description = payload.get("error_description") or self.error_message(response, payload)
            raise TokenExchangeError(
                f"Token request rejected for {credential.client_email} "
                f"status={response.status_code}: {description}"
            )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError(f"Token response for {credential.client_email} had no access_token.")
        return access_token
