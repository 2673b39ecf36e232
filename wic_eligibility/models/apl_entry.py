"""AplEntry model — one approved-product row per (state, upc, effective window).

Rows are written by the ingestion pipeline; this subsystem only reads them.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ARRAY, Boolean, CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from wic_eligibility.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AplEntry(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A WIC Approved Product List entry for one state."""

    __tablename__ = "apl_entries"
    __table_args__ = (
        CheckConstraint(
            "expiration_date IS NULL OR expiration_date > effective_date",
            name="ck_apl_entries_valid_window",
        ),
        Index("ix_apl_entries_state_upc", "state", "upc"),
        Index("ix_apl_entries_state_category", "state", "benefit_category"),
    )

    # Identity
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    upc: Mapped[str] = mapped_column(String(14), nullable=False, comment="Normalized UPC (12-14 digits)")

    # Eligibility
    eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    benefit_category: Mapped[str] = mapped_column(String(100), nullable=False)
    benefit_subcategory: Mapped[str | None] = mapped_column(String(100))
    participant_types: Mapped[list[str] | None] = mapped_column(ARRAY(String(20)))

    # Restrictions (camelCase JSON documents)
    size_restriction: Mapped[dict | None] = mapped_column(
        JSONB, comment="minSize, maxSize, exactSize, unit, allowedSizes"
    )
    brand_restriction: Mapped[dict | None] = mapped_column(
        JSONB, comment="allowedBrands, excludedBrands, contractBrand, contractStartDate, contractEndDate"
    )
    additional_restrictions: Mapped[dict | None] = mapped_column(
        JSONB, comment="wholeGrainRequired, maxSugarGrams, maxSodiumMg, organicRequired, noArtificialDyes, ..."
    )

    # Validity window
    effective_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Provenance
    notes: Mapped[str | None] = mapped_column(Text)
    data_source: Mapped[str] = mapped_column(String(20), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_hash: Mapped[str | None] = mapped_column(String(64), comment="SHA-256 of source data")

    def __repr__(self) -> str:
        return f"<AplEntry state={self.state} upc={self.upc} eligible={self.eligible}>"
