"""Eligibility engine — rule-based WIC product eligibility for one state."""

from wic_eligibility.eligibility.cache import EntryCache
from wic_eligibility.eligibility.engine import EligibilityRulesEngine
from wic_eligibility.eligibility.service import EligibilityService, build_eligibility_service
from wic_eligibility.eligibility.units import convert_size
from wic_eligibility.schemas.eligibility import (
    EligibilityCheckResponse,
    EligibilityEvaluation,
    EligibilityStatus,
    HouseholdContext,
    ProductFacts,
    RuleType,
    RuleViolation,
)

__all__ = [
    "EligibilityRulesEngine",
    "EligibilityService",
    "build_eligibility_service",
    "EntryCache",
    "convert_size",
    "ProductFacts",
    "HouseholdContext",
    "RuleType",
    "RuleViolation",
    "EligibilityStatus",
    "EligibilityEvaluation",
    "EligibilityCheckResponse",
]
