"""Per-rule eligibility checks.

Each check returns the first RuleViolation it finds, or None. Checks are pure
and deterministic; the engine decides the order they run in.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from wic_eligibility.eligibility.units import convert_size
from wic_eligibility.models.enums import ParticipantType
from wic_eligibility.schemas.apl import (
    AdditionalRestrictions,
    ApprovedProductEntry,
    BrandRestriction,
    SizeRestriction,
)
from wic_eligibility.schemas.eligibility import (
    HouseholdContext,
    NutritionFacts,
    ProductAttributes,
    RuleType,
    RuleViolation,
)


def _fmt(value: float) -> str:
    """12.0 → "12", 12.5 → "12.5"."""
    return f"{value:g}"


def _date(value: datetime) -> str:
    return value.date().isoformat()


# ── Approval window ──────────────────────────────────────────────────


def check_not_yet_effective(entry: ApprovedProductEntry, as_of: datetime) -> RuleViolation | None:
    if entry.effective_date <= as_of:
        return None
    return RuleViolation(
        rule=RuleType.NOT_YET_EFFECTIVE,
        message=f"Product approval not effective until {_date(entry.effective_date)}",
        expected=entry.effective_date.isoformat(),
        actual=as_of.isoformat(),
    )


def check_expired(entry: ApprovedProductEntry, as_of: datetime) -> RuleViolation | None:
    if entry.expiration_date is None or entry.expiration_date > as_of:
        return None
    return RuleViolation(
        rule=RuleType.EXPIRED_APPROVAL,
        message=f"Product approval expired on {_date(entry.expiration_date)}",
        expected="Active approval",
        actual=f"Expired {_date(entry.expiration_date)}",
    )


# ── Size ─────────────────────────────────────────────────────────────


def check_size(
    actual_size: float,
    size_unit: str | None,
    restriction: SizeRestriction,
) -> RuleViolation | None:
    """Exact size, then allowed list, then minimum, then maximum."""
    unit = restriction.unit.value
    size = convert_size(actual_size, size_unit, unit)

    if restriction.exact_size is not None and size != restriction.exact_size:
        return RuleViolation(
            rule=RuleType.SIZE_NOT_EXACT,
            message=f"Product must be exactly {_fmt(restriction.exact_size)} {unit}",
            expected=restriction.exact_size,
            actual=size,
        )

    if restriction.allowed_sizes and size not in restriction.allowed_sizes:
        sizes = ", ".join(_fmt(s) for s in restriction.allowed_sizes)
        return RuleViolation(
            rule=RuleType.SIZE_NOT_ALLOWED,
            message=f"Product size must be one of: {sizes} {unit}",
            expected=list(restriction.allowed_sizes),
            actual=size,
        )

    if restriction.min_size is not None and size < restriction.min_size:
        return RuleViolation(
            rule=RuleType.SIZE_TOO_SMALL,
            message=f"Product must be at least {_fmt(restriction.min_size)} {unit}",
            expected=f">={_fmt(restriction.min_size)}",
            actual=size,
        )

    if restriction.max_size is not None and size > restriction.max_size:
        return RuleViolation(
            rule=RuleType.SIZE_TOO_LARGE,
            message=f"Product must be no more than {_fmt(restriction.max_size)} {unit}",
            expected=f"<={_fmt(restriction.max_size)}",
            actual=size,
        )

    return None


# ── Brand ────────────────────────────────────────────────────────────


def _fold(brand: str) -> str:
    return brand.strip().casefold()


def check_brand(brand: str, restriction: BrandRestriction, as_of: datetime) -> RuleViolation | None:
    """Contract window and brand first, then allow-list, then deny-list."""
    folded = _fold(brand)

    if restriction.contract_brand:
        contract = restriction.contract_brand

        if restriction.contract_end_date is not None and restriction.contract_end_date < as_of:
            return RuleViolation(
                rule=RuleType.CONTRACT_EXPIRED,
                message=f"Contract brand expired on {_date(restriction.contract_end_date)}",
                expected=contract,
                actual="Expired contract",
            )

        if restriction.contract_start_date is not None and restriction.contract_start_date > as_of:
            return RuleViolation(
                rule=RuleType.CONTRACT_NOT_ACTIVE,
                message=f"Contract brand not yet active (starts {_date(restriction.contract_start_date)})",
                expected=contract,
                actual="Contract not active",
            )

        if folded != _fold(contract):
            return RuleViolation(
                rule=RuleType.NOT_CONTRACT_BRAND,
                message=f"Only {contract} brand allowed (contract brand)",
                expected=contract,
                actual=brand,
            )

    if restriction.allowed_brands and folded not in {_fold(b) for b in restriction.allowed_brands}:
        return RuleViolation(
            rule=RuleType.BRAND_NOT_ALLOWED,
            message=f"Only these brands allowed: {', '.join(restriction.allowed_brands)}",
            expected=list(restriction.allowed_brands),
            actual=brand,
        )

    if restriction.excluded_brands and folded in {_fold(b) for b in restriction.excluded_brands}:
        return RuleViolation(
            rule=RuleType.BRAND_EXCLUDED,
            message=f"This brand is not WIC-approved: {brand}",
            expected="Approved brand",
            actual=brand,
        )

    return None


# ── Participants ─────────────────────────────────────────────────────


def partition_participants(
    allowed: Sequence[ParticipantType],
    household: HouseholdContext | None,
) -> tuple[list[ParticipantType], list[ParticipantType]]:
    """Split household participant types into (may purchase, may not purchase).

    Without a household the allowed types themselves are the eligible set.
    """
    if household is None:
        return list(allowed), []

    household_types = household.participant_types
    eligible = [t for t in household_types if t in allowed]
    ineligible = [t for t in household_types if t not in allowed]
    return eligible, ineligible


def participant_violation(
    allowed: Sequence[ParticipantType],
    household: HouseholdContext | None,
) -> RuleViolation:
    return RuleViolation(
        rule=RuleType.PARTICIPANT_TYPE_RESTRICTED,
        message=f"Product restricted to: {', '.join(t.value for t in allowed)}",
        expected=[t.value for t in allowed],
        actual=[t.value for t in household.participant_types] if household else [],
    )


def partial_participant_warning(
    eligible: Sequence[ParticipantType],
    ineligible: Sequence[ParticipantType],
) -> str:
    may = ", ".join(t.value for t in eligible)
    may_not = ", ".join(t.value for t in ineligible)
    return f"Only {may} can purchase this product ({may_not} cannot)"


# ── Nutrition & attributes ───────────────────────────────────────────


def check_nutrition(
    nutrition: NutritionFacts | None,
    attributes: ProductAttributes | None,
    restrictions: AdditionalRestrictions,
) -> RuleViolation | None:
    """First failing nutritional or attribute restriction.

    Only facts the caller actually supplied are checked: an unknown value
    (None) never fails a rule.
    """
    nutrition = nutrition or NutritionFacts()
    attributes = attributes or ProductAttributes()

    if (
        restrictions.max_sugar_grams is not None
        and nutrition.sugar_grams is not None
        and nutrition.sugar_grams > restrictions.max_sugar_grams
    ):
        return RuleViolation(
            rule=RuleType.SUGAR_EXCEEDS_LIMIT,
            message=f"Sugar content exceeds limit ({_fmt(restrictions.max_sugar_grams)}g per serving)",
            expected=f"<={_fmt(restrictions.max_sugar_grams)}g",
            actual=f"{_fmt(nutrition.sugar_grams)}g",
        )

    if (
        restrictions.max_sodium_mg is not None
        and nutrition.sodium_mg is not None
        and nutrition.sodium_mg > restrictions.max_sodium_mg
    ):
        return RuleViolation(
            rule=RuleType.SODIUM_EXCEEDS_LIMIT,
            message=f"Sodium content exceeds limit ({_fmt(restrictions.max_sodium_mg)}mg per serving)",
            expected=f"<={_fmt(restrictions.max_sodium_mg)}mg",
            actual=f"{_fmt(nutrition.sodium_mg)}mg",
        )

    if restrictions.whole_grain_required and attributes.is_whole_grain is False:
        return RuleViolation(
            rule=RuleType.NOT_WHOLE_GRAIN,
            message="Product must be whole grain",
            expected="Whole grain",
            actual="Not whole grain",
        )

    if restrictions.organic_required and attributes.is_organic is False:
        return RuleViolation(
            rule=RuleType.NOT_ORGANIC,
            message="Product must be certified organic",
            expected="Organic",
            actual="Not organic",
        )

    if restrictions.no_artificial_dyes and attributes.has_artificial_dyes:
        return RuleViolation(
            rule=RuleType.HAS_ARTIFICIAL_DYES,
            message="Product contains prohibited artificial dyes",
            expected="No artificial dyes",
            actual="Contains artificial dyes",
        )

    if restrictions.low_fat_required and nutrition.whole_fat:
        return RuleViolation(
            rule=RuleType.NOT_LOW_FAT,
            message="Product must be low-fat or reduced-fat",
            expected="Low-fat",
            actual="Whole fat",
        )

    if restrictions.fortification_required and attributes.fortification is not None:
        present = {f.strip().casefold() for f in attributes.fortification}
        missing = [f for f in restrictions.fortification_required if f.strip().casefold() not in present]
        if missing:
            # All missing items are reported together.
            return RuleViolation(
                rule=RuleType.MISSING_FORTIFICATION,
                message=f"Product must be fortified with: {', '.join(missing)}",
                expected=list(restrictions.fortification_required),
                actual=list(attributes.fortification),
            )

    return None
