"""Pydantic schemas for the Approved Product List (APL) registry.

Restriction payloads are typed per restriction kind instead of free-form
dicts. They read and write the same camelCase JSON stored in the registry's
JSONB columns (``minSize``, ``contractBrand``, ``maxSugarGrams``, ...).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from wic_eligibility.models.enums import DataSource, ParticipantType, SizeUnit

if TYPE_CHECKING:
    from wic_eligibility.models.apl_entry import AplEntry


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so window comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class _CamelModel(BaseModel):
    """Accepts both snake_case and camelCase keys; dumps camelCase with by_alias=True."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Restriction payloads
# ---------------------------------------------------------------------------


class SizeRestriction(_CamelModel):
    """Exact size, min/max range, or enumerated allowed sizes — all in one unit."""

    unit: SizeUnit
    exact_size: float | None = None
    min_size: float | None = None
    max_size: float | None = None
    allowed_sizes: list[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> SizeRestriction:
        for name in ("exact_size", "min_size", "max_size"):
            value = getattr(self, name)
            if value is not None and value < 0:
                msg = f"{name} cannot be negative"
                raise ValueError(msg)
        if self.min_size is not None and self.max_size is not None and self.min_size > self.max_size:
            msg = "min_size cannot exceed max_size"
            raise ValueError(msg)
        if any(size <= 0 for size in self.allowed_sizes):
            msg = "allowed_sizes must be positive"
            raise ValueError(msg)
        return self


class BrandRestriction(_CamelModel):
    """Allow-list, deny-list, and/or a single contract brand with a validity window."""

    allowed_brands: list[str] = Field(default_factory=list)
    excluded_brands: list[str] = Field(default_factory=list)
    contract_brand: str | None = None
    contract_start_date: UtcDatetime | None = None
    contract_end_date: UtcDatetime | None = None

    @model_validator(mode="after")
    def _check_contract_window(self) -> BrandRestriction:
        if (
            self.contract_start_date is not None
            and self.contract_end_date is not None
            and self.contract_end_date <= self.contract_start_date
        ):
            msg = "contract_end_date must be after contract_start_date"
            raise ValueError(msg)
        return self


class AdditionalRestrictions(_CamelModel):
    """Category-specific nutritional and attribute constraints."""

    whole_grain_required: bool = False
    max_sugar_grams: float | None = None
    max_sodium_mg: float | None = None
    organic_required: bool = False
    no_artificial_dyes: bool = False
    low_fat_required: bool = False
    fortification_required: list[str] = Field(default_factory=list)
    restriction_notes: str | None = None


# ---------------------------------------------------------------------------
# Registry entry
# ---------------------------------------------------------------------------


class ApprovedProductEntry(BaseModel):
    """One registry row: a product code's eligibility in a state for a time window."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    state: str
    code: str
    eligible: bool
    category: str
    subcategory: str | None = None
    participant_types: list[ParticipantType] = Field(default_factory=list)  # empty = all
    size_restriction: SizeRestriction | None = None
    brand_restriction: BrandRestriction | None = None
    additional_restrictions: AdditionalRestrictions | None = None
    effective_date: UtcDatetime
    expiration_date: UtcDatetime | None = None
    notes: str | None = None
    data_source: DataSource = DataSource.MANUAL
    verified: bool = False
    source_hash: str | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    @model_validator(mode="after")
    def _check_window(self) -> ApprovedProductEntry:
        if self.expiration_date is not None and self.expiration_date <= self.effective_date:
            msg = "expiration_date must be after effective_date"
            raise ValueError(msg)
        return self

    def is_current(self, as_of: datetime) -> bool:
        """True if the entry is authoritative at `as_of`."""
        as_of = as_utc(as_of)
        if self.effective_date > as_of:
            return False
        return self.expiration_date is None or self.expiration_date > as_of

    @classmethod
    def from_row(cls, row: AplEntry) -> ApprovedProductEntry:
        """Build from an AplEntry ORM row (JSONB columns parsed into typed restrictions)."""
        return cls(
            id=row.id,
            state=row.state,
            code=row.upc,
            eligible=row.eligible,
            category=row.benefit_category,
            subcategory=row.benefit_subcategory,
            participant_types=row.participant_types or [],
            size_restriction=row.size_restriction or None,
            brand_restriction=row.brand_restriction or None,
            additional_restrictions=row.additional_restrictions or None,
            effective_date=row.effective_date,
            expiration_date=row.expiration_date,
            notes=row.notes,
            data_source=row.data_source,
            verified=row.verified,
            source_hash=row.source_hash,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


# ---------------------------------------------------------------------------
# Code normalization output
# ---------------------------------------------------------------------------


class CodeVariantSet(BaseModel):
    """Comparable forms of one raw barcode string."""

    model_config = ConfigDict(frozen=True)

    original: str
    upc12: str = ""
    ean13: str = ""
    padded: str = ""  # zero-padded 12-digit form when upc12 was expanded from UPC-E
    trimmed: str = ""
    check_digit: str = ""
    is_valid: bool = False

    def lookup_codes(self) -> list[str]:
        """Registry candidates in priority order, de-duplicated, empties dropped."""
        if not self.is_valid:
            return [self.original] if self.original else []
        seen: list[str] = []
        for code in (self.upc12, self.ean13, self.padded, self.trimmed, self.original):
            if code and code not in seen:
                seen.append(code)
        return seen


# ---------------------------------------------------------------------------
# Freshness
# ---------------------------------------------------------------------------


class SyncFreshness(BaseModel):
    """Last successful registry sync for a state."""

    state: str
    last_sync: UtcDatetime

    def data_age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the last successful sync (never negative)."""
        now = as_utc(now) if now is not None else datetime.now(UTC)
        return max((now - self.last_sync).total_seconds(), 0.0)
