"""create gsc_credentials and site_urls tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "gsc_credentials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("client_email", sa.String(length=320), nullable=False),
        sa.Column("private_key", sa.Text(), nullable=False),
        sa.Column("site_url", sa.String(length=2048), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_gsc_credentials_project_id_created_at",
        "gsc_credentials",
        ["project_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "uq_gsc_credentials_project_id_client_email",
        "gsc_credentials",
        ["project_id", "client_email"],
        unique=True,
    )

    op.create_table(
        "site_urls",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("uq_site_urls_project_id_url", "site_urls", ["project_id", "url"], unique=True)


def downgrade() -> None:
    op.drop_index("uq_site_urls_project_id_url", table_name="site_urls")
    op.drop_table("site_urls")
    op.drop_index("uq_gsc_credentials_project_id_client_email", table_name="gsc_credentials")
    op.drop_index("ix_gsc_credentials_project_id_created_at", table_name="gsc_credentials")
    op.drop_table("gsc_credentials")
