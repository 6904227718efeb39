"""
db/models/gsc_credential.py

Service-account credential connected to a project's Search Console property.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class GSCCredential(Base, TimestampMixin):
    """
    One authorized identity able to submit and inspect URLs for a verified site.

    A project may own several credentials; the oldest (by created_at) is the
    default one. Rows are read-only for the dispatcher.
    """

    __tablename__ = "gsc_credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
    )
    client_email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Service account email, the stable credential identifier",
    )
    private_key: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="PEM-encoded PKCS#8 signing key",
    )
    site_url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        comment="Verified Search Console property, e.g. sc-domain:example.com",
    )

    __table_args__ = (
        Index("ix_gsc_credentials_project_id_created_at", "project_id", "created_at"),
        Index("uq_gsc_credentials_project_id_client_email", "project_id", "client_email", unique=True),
    )

    def __repr__(self) -> str:
        return f"<GSCCredential id={self.id} client_email={self.client_email!r}>"
