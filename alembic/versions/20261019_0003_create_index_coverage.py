"""create index_coverage table

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 09:20:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "index_coverage",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("verdict", sa.String(length=64), nullable=False),
        sa.Column("coverage_state", sa.String(length=255), nullable=True),
        sa.Column("robots_txt_state", sa.String(length=64), nullable=True),
        sa.Column("indexing_state", sa.String(length=64), nullable=True),
        sa.Column("page_fetch_state", sa.String(length=64), nullable=True),
        sa.Column("crawled_as", sa.String(length=32), nullable=True),
        sa.Column("last_crawl_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referring_urls", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("sitemap", sa.String(length=2048), nullable=True),
        sa.Column("inspected_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "url", name="uq_index_coverage_project_id_url"),
    )


def downgrade() -> None:
    op.drop_table("index_coverage")
