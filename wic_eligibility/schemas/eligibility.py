"""Pydantic schemas for the rules engine and lookup service.

Pure data classes — no DB dependencies. Inputs are caller-supplied facts and
household context; outputs are ephemeral evaluations that are never persisted.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from wic_eligibility.models.enums import ParticipantType
from wic_eligibility.schemas.apl import ApprovedProductEntry, UtcDatetime

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RuleType(str, Enum):
    """Identifiers for every rule the engine can report."""

    # Product presence
    NOT_IN_APL = "not_in_apl"
    EXPIRED_APPROVAL = "expired_approval"
    NOT_YET_EFFECTIVE = "not_yet_effective"

    # Size
    SIZE_TOO_SMALL = "size_too_small"
    SIZE_TOO_LARGE = "size_too_large"
    SIZE_NOT_EXACT = "size_not_exact"
    SIZE_NOT_ALLOWED = "size_not_allowed"

    # Brand
    BRAND_NOT_ALLOWED = "brand_not_allowed"
    BRAND_EXCLUDED = "brand_excluded"
    NOT_CONTRACT_BRAND = "not_contract_brand"
    CONTRACT_EXPIRED = "contract_expired"
    CONTRACT_NOT_ACTIVE = "contract_not_active"

    # Participants
    PARTICIPANT_TYPE_RESTRICTED = "participant_type_restricted"

    # Nutrition / attributes
    SUGAR_EXCEEDS_LIMIT = "sugar_exceeds_limit"
    SODIUM_EXCEEDS_LIMIT = "sodium_exceeds_limit"
    NOT_WHOLE_GRAIN = "not_whole_grain"
    NOT_LOW_FAT = "not_low_fat"
    NOT_ORGANIC = "not_organic"
    HAS_ARTIFICIAL_DYES = "has_artificial_dyes"
    MISSING_FORTIFICATION = "missing_fortification"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class EligibilityStatus(str, Enum):
    """Outcome class of a verdict. Only ELIGIBLE implies eligible=True."""

    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    UNKNOWN = "unknown"                        # registry could not be consulted
    INVALID_CODE = "invalid_code"              # malformed input (batch items only)
    UNSUPPORTED_STATE = "unsupported_state"    # no policy and no registry entry


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class NutritionFacts(BaseModel):
    """Per-serving nutrition facts supplied by the caller."""

    sugar_grams: float | None = None
    sodium_mg: float | None = None
    whole_fat: bool | None = None


class ProductAttributes(BaseModel):
    """Label attributes supplied by the caller."""

    is_organic: bool | None = None
    is_whole_grain: bool | None = None
    has_artificial_dyes: bool | None = None
    fortification: list[str] | None = None


class ProductFacts(BaseModel):
    """Everything the caller knows about the scanned product."""

    code: str
    state: str
    actual_size: float | None = None
    size_unit: str | None = None
    brand: str | None = None
    category: str | None = None
    nutrition: NutritionFacts | None = None
    attributes: ProductAttributes | None = None

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        """Strip whitespace and uppercase."""
        return v.strip().upper()


class ParticipantContext(BaseModel):
    """One household member."""

    type: ParticipantType
    age_months: int | None = None
    is_breastfeeding: bool | None = None


class HouseholdContext(BaseModel):
    """State of residence plus the ordered list of participants."""

    state: str
    participants: list[ParticipantContext] = Field(default_factory=list)
    benefit_period_start: date | None = None
    benefit_period_end: date | None = None

    @property
    def participant_types(self) -> list[ParticipantType]:
        """Distinct participant types in household order."""
        seen: list[ParticipantType] = []
        for participant in self.participants:
            if participant.type not in seen:
                seen.append(participant.type)
        return seen


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class RuleViolation(BaseModel):
    """A single failed rule, with what was required and what was found."""

    rule: RuleType
    severity: Severity = Severity.ERROR
    message: str
    expected: Any = None
    actual: Any = None


class EligibilityEvaluation(BaseModel):
    """Structured verdict from the rules engine."""

    eligible: bool
    status: EligibilityStatus
    code: str
    state: str
    entry: ApprovedProductEntry | None = None
    ineligibility_reason: str | None = None
    rule_violations: list[RuleViolation] = Field(default_factory=list)
    eligible_participants: list[ParticipantType] = Field(default_factory=list)
    ineligible_participants: list[ParticipantType] = Field(default_factory=list)
    confidence: int = Field(default=100, ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    alternatives: list[str] | None = None
    evaluated_at: UtcDatetime
    error: str | None = None


class EligibilityCheckResponse(EligibilityEvaluation):
    """Evaluation wrapped with cache and data-freshness metadata."""

    summary: str = ""
    from_cache: bool = False
    state_supported: bool = True
    last_sync: datetime | None = None
    data_age_seconds: float | None = None


class BatchEligibilityRequest(BaseModel):
    """Body of the batch endpoint."""

    codes: list[str] = Field(min_length=1, max_length=500)
    state: str
    household: HouseholdContext | None = None


class BatchEligibilityResponse(BaseModel):
    """Batch endpoint result: one item per requested code, in request order."""

    results: list[EligibilityCheckResponse]
    total: int
    eligible_count: int


class PolicySummaryResponse(BaseModel):
    state: str
    display_name: str
    summary: str
