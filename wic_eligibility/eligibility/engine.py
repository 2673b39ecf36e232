"""Rules engine — evaluates one product against its registry entry.

Pure Python orchestrator. No DB access, no cache.
The lookup service resolves the registry entry and household beforehand.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from wic_eligibility.eligibility.rules import (
    check_brand,
    check_expired,
    check_not_yet_effective,
    check_nutrition,
    check_size,
    partial_participant_warning,
    participant_violation,
    partition_participants,
)
from wic_eligibility.models.enums import ALL_PARTICIPANT_TYPES
from wic_eligibility.policy.registry import StatePolicyRegistry
from wic_eligibility.schemas.apl import (
    AdditionalRestrictions,
    ApprovedProductEntry,
    BrandRestriction,
    as_utc,
)
from wic_eligibility.schemas.eligibility import (
    EligibilityEvaluation,
    EligibilityStatus,
    HouseholdContext,
    ProductFacts,
    RuleType,
    RuleViolation,
)

logger = logging.getLogger(__name__)

DEFAULT_NOT_FOUND_CONFIDENCE = 90


class EligibilityRulesEngine:
    """Ordered, short-circuiting rule pipeline.

    Order: presence → explicit ineligibility → not yet effective → expired →
    size → brand → participants → nutrition/attributes. The first
    disqualifying violation ends the evaluation.
    """

    def __init__(
        self,
        policies: StatePolicyRegistry | None = None,
        not_found_confidence: int = DEFAULT_NOT_FOUND_CONFIDENCE,
    ) -> None:
        self._policies = policies
        self._not_found_confidence = not_found_confidence

    # ── Restriction resolution ───────────────────────────────────────

    def _additional_restrictions(self, entry: ApprovedProductEntry) -> AdditionalRestrictions | None:
        if entry.additional_restrictions is not None:
            return entry.additional_restrictions
        if self._policies is None:
            return None
        return self._policies.get_category_restrictions(entry.state, entry.category)

    def _brand_restriction(self, entry: ApprovedProductEntry) -> BrandRestriction | None:
        if entry.brand_restriction is not None:
            return entry.brand_restriction
        if self._policies is None:
            return None
        window = self._policies.get_contract_window(entry.state, entry.category)
        if window is None:
            return None
        return BrandRestriction(
            contract_brand=window.brand,
            contract_start_date=window.start_date,
            contract_end_date=window.end_date,
        )

    # ── Evaluation ───────────────────────────────────────────────────

    def evaluate(
        self,
        product: ProductFacts,
        entry: ApprovedProductEntry | None,
        household: HouseholdContext | None = None,
        as_of: datetime | None = None,
    ) -> EligibilityEvaluation:
        """Evaluate a product against its (already resolved) registry entry."""
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        evaluation = EligibilityEvaluation(
            eligible=False,
            status=EligibilityStatus.INELIGIBLE,
            code=product.code,
            state=product.state,
            entry=entry,
            evaluated_at=as_of,
        )

        def reject(violation: RuleViolation, reason: str | None = None) -> EligibilityEvaluation:
            evaluation.rule_violations.append(violation)
            evaluation.ineligibility_reason = reason or violation.message
            return evaluation

        # 1. Presence
        if entry is None:
            evaluation.confidence = self._not_found_confidence
            return reject(
                RuleViolation(
                    rule=RuleType.NOT_IN_APL,
                    message=f"Product not found in {product.state} WIC Approved Product List",
                ),
                f"Product is not on the approved list for {product.state}",
            )

        # 2. Explicitly ineligible
        if not entry.eligible:
            return reject(
                RuleViolation(rule=RuleType.NOT_IN_APL, message="Product is explicitly marked as not WIC-eligible"),
                "Product is not WIC-approved",
            )

        # 3-4. Approval window
        violation = check_not_yet_effective(entry, as_of)
        if violation:
            return reject(violation, "Product approval not yet effective")
        violation = check_expired(entry, as_of)
        if violation:
            return reject(violation, "Product approval has expired")

        # 5. Size
        if entry.size_restriction is not None and product.actual_size is not None:
            violation = check_size(product.actual_size, product.size_unit, entry.size_restriction)
            if violation:
                return reject(violation)

        # 6. Brand
        brand_restriction = self._brand_restriction(entry)
        if brand_restriction is not None and product.brand and product.brand.strip():
            violation = check_brand(product.brand, brand_restriction, as_of)
            if violation:
                return reject(violation)

        # 7. Participants
        if entry.participant_types:
            eligible, ineligible = partition_participants(entry.participant_types, household)
            evaluation.eligible_participants = eligible
            evaluation.ineligible_participants = ineligible
            if not eligible:
                return reject(
                    participant_violation(entry.participant_types, household),
                    "No eligible participants in household",
                )
            if ineligible:
                evaluation.warnings.append(partial_participant_warning(eligible, ineligible))
        elif household is not None:
            evaluation.eligible_participants = household.participant_types
        else:
            evaluation.eligible_participants = list(ALL_PARTICIPANT_TYPES)

        # 8. Nutrition & attributes
        restrictions = self._additional_restrictions(entry)
        if restrictions is not None and (product.nutrition is not None or product.attributes is not None):
            violation = check_nutrition(product.nutrition, product.attributes, restrictions)
            if violation:
                return reject(violation)

        evaluation.eligible = True
        evaluation.status = EligibilityStatus.ELIGIBLE
        evaluation.confidence = 100
        if entry.notes:
            evaluation.warnings.append(entry.notes)
        return evaluation

    def evaluate_batch(
        self,
        products: Sequence[ProductFacts],
        entries: Mapping[str, ApprovedProductEntry | None],
        household: HouseholdContext | None = None,
        as_of: datetime | None = None,
    ) -> list[EligibilityEvaluation]:
        """Evaluate many products against an already-resolved code → entry map.

        Never queries anything; one output per input, in input order.
        """
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        return [self.evaluate(product, entries.get(product.code), household, as_of) for product in products]

    # ── Presentation ─────────────────────────────────────────────────

    @staticmethod
    def summarize(evaluation: EligibilityEvaluation) -> str:
        """Human-readable verdict for the CLI and API."""
        if evaluation.status == EligibilityStatus.UNKNOWN:
            return f"Eligibility could not be confirmed\n{evaluation.error or 'Registry unavailable'}"
        if evaluation.status == EligibilityStatus.UNSUPPORTED_STATE:
            return f"State {evaluation.state} is not currently supported"
        if evaluation.status == EligibilityStatus.INVALID_CODE:
            return f"Invalid product code: {evaluation.code}"

        if not evaluation.eligible:
            return f"Not WIC Eligible\n{evaluation.ineligibility_reason or 'Unknown reason'}"

        summary = "WIC Eligible"
        participants = evaluation.eligible_participants
        if participants and len(participants) < len(ALL_PARTICIPANT_TYPES):
            summary += f" for {', '.join(p.value for p in participants)}"
        for warning in evaluation.warnings:
            summary += f"\n! {warning}"
        return summary
