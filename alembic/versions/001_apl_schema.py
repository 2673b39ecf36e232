"""APL registry schema — approved product entries and per-state sync status.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    # ── Approved product list ──────────────────────────────────────────

    op.create_table(
        "apl_entries",
        sa.Column("state", sa.String(2), nullable=False),
        sa.Column("upc", sa.String(14), nullable=False, comment="Normalized UPC (12-14 digits)"),
        sa.Column("eligible", sa.Boolean(), nullable=False),
        sa.Column("benefit_category", sa.String(100), nullable=False),
        sa.Column("benefit_subcategory", sa.String(100)),
        sa.Column("participant_types", postgresql.ARRAY(sa.String(20))),
        sa.Column(
            "size_restriction",
            postgresql.JSONB(astext_type=sa.Text()),
            comment="minSize, maxSize, exactSize, unit, allowedSizes",
        ),
        sa.Column(
            "brand_restriction",
            postgresql.JSONB(astext_type=sa.Text()),
            comment="allowedBrands, excludedBrands, contractBrand, contractStartDate, contractEndDate",
        ),
        sa.Column(
            "additional_restrictions",
            postgresql.JSONB(astext_type=sa.Text()),
            comment="wholeGrainRequired, maxSugarGrams, maxSodiumMg, organicRequired, noArtificialDyes, ...",
        ),
        sa.Column("effective_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiration_date", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text()),
        sa.Column("data_source", sa.String(20), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("source_hash", sa.String(64), comment="SHA-256 of source data"),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "expiration_date IS NULL OR expiration_date > effective_date",
            name="ck_apl_entries_valid_window",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_apl_entries_state_upc", "apl_entries", ["state", "upc"])
    op.create_index("ix_apl_entries_state_category", "apl_entries", ["state", "benefit_category"])

    # ── Sync bookkeeping ───────────────────────────────────────────────

    op.create_table(
        "apl_sync_status",
        sa.Column("state", sa.String(2), nullable=False, index=True),
        sa.Column("data_source", sa.String(20), nullable=False),
        sa.Column("last_sync_at", sa.DateTime(timezone=True)),
        sa.Column("last_success_at", sa.DateTime(timezone=True)),
        sa.Column("last_sync_status", sa.String(20), nullable=False),
        sa.Column("last_sync_error", sa.Text()),
        sa.Column("consecutive_failures", sa.Integer(), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("apl_sync_status")
    op.drop_index("ix_apl_entries_state_category", table_name="apl_entries")
    op.drop_index("ix_apl_entries_state_upc", table_name="apl_entries")
    op.drop_table("apl_entries")
