"""create indexing_requests table

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "indexing_requests",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("operation", sa.String(length=16), nullable=False),
        sa.Column("request_type", sa.String(length=32), nullable=True),
        sa.Column("credential_email", sa.String(length=320), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("response_code", sa.Integer(), nullable=True),
        sa.Column("response_message", sa.Text(), nullable=True),
        sa.Column("fail_reason", sa.Text(), nullable=True),
        sa.Column("retries", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_indexing_requests_latest_lookup",
        "indexing_requests",
        ["project_id", "operation", "url", "recorded_at"],
        unique=False,
    )
    op.create_index(
        "ix_indexing_requests_project_id_recorded_at",
        "indexing_requests",
        ["project_id", "recorded_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_indexing_requests_project_id_recorded_at", table_name="indexing_requests")
    op.drop_index("ix_indexing_requests_latest_lookup", table_name="indexing_requests")
    op.drop_table("indexing_requests")
