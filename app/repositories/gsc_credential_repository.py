"""
app/repositories/gsc_credential_repository.py

Credential lookup and registration.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.indexing import Credential
from db.models.gsc_credential import GSCCredential


class GSCCredentialRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_project(self, project_id: uuid.UUID) -> list[Credential]:
        """
        Credentials of a project, oldest first (the first one is the default).
        """

        stmt = (
            select(GSCCredential)
            .where(GSCCredential.project_id == project_id)
            .order_by(GSCCredential.created_at.asc(), GSCCredential.id.asc())
        )
        return [
            Credential(
                id=row.id,
                client_email=row.client_email,
                private_key=row.private_key,
                site_url=row.site_url,
                created_at=row.created_at,
            )
            for row in self._session.scalars(stmt).all()
        ]

    def add(
        self,
        *,
        project_id: uuid.UUID,
        client_email: str,
        private_key: str,
        site_url: str,
    ) -> GSCCredential:
        row = GSCCredential(
            project_id=project_id,
            client_email=client_email.strip(),
            private_key=private_key,
            site_url=site_url.strip(),
        )
        self._session.add(row)
        self._session.flush()
        return row
