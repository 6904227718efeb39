"""
app/services/credential_pool.py

Per-project credential enumeration and scoped token acquisition.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Protocol

from app.connectors.google_auth import TokenExchangeError
from app.domain.indexing import AuthorizedCredential, Credential

logger = logging.getLogger(__name__)


class CredentialPoolError(Exception):
    """Base exception for credential pool failures."""


class CredentialsNotConfiguredError(CredentialPoolError):
    """Raised when a project has no credential at all."""


class CredentialAuthError(CredentialPoolError):
    """Raised when one credential cannot be authorized."""


class NoAuthorizedCredentialsError(CredentialPoolError):
    """Raised when every credential of a project failed authorization."""


class CredentialSource(Protocol):
    def list_for_project(self, project_id: uuid.UUID) -> list[Credential]: ...


class TokenExchanger(Protocol):
    def exchange(self, credential: Credential, scope: str) -> str: ...


class CredentialPool:
    """
    Lists a project's credentials (oldest first) and mints scoped tokens.
    """

    def __init__(self, *, source: CredentialSource, token_exchanger: TokenExchanger) -> None:
        self._source = source
        self._token_exchanger = token_exchanger

    def list_credentials(self, project_id: uuid.UUID) -> list[Credential]:
        credentials = list(self._source.list_for_project(project_id))
        if not credentials:
            raise CredentialsNotConfiguredError(
                "No Search Console connection found for this project. "
                "Connect Google Search Console first."
            )
        return credentials

    def authorize(self, credential: Credential, scope: str) -> AuthorizedCredential:
        try:
            token = self._token_exchanger.exchange(credential, scope)
        except TokenExchangeError as exc:
            raise CredentialAuthError(str(exc)) from exc
        return AuthorizedCredential(credential=credential, access_token=token)

    def authorize_all(
        self,
        credentials: Sequence[Credential],
        scope: str,
    ) -> tuple[list[AuthorizedCredential], list[str]]:
        """
        Authorize every credential, dropping the ones that fail.

        Returns the authorized credentials in pool order and the identifiers
        that were dropped. Raises NoAuthorizedCredentialsError if none survive.
        """

        authorized: list[AuthorizedCredential] = []
        dropped: list[str] = []
        for credential in credentials:
            try:
                authorized.append(self.authorize(credential, scope))
            except CredentialAuthError as exc:
                logger.error(
                    "Credential authorization failed client_email=%s scope=%s error=%s",
                    credential.client_email,
                    scope,
                    exc,
                )
                dropped.append(credential.identifier)

        if not authorized:
            raise NoAuthorizedCredentialsError(
                f"All {len(dropped)} credential(s) failed authorization: {', '.join(dropped)}."
            )
        return authorized, dropped
