"""State Policy Registry — read-only lookup from state code to StatePolicy.

Constructed once at startup and passed to the engine and service. Every
accessor returns None (or an empty collection) for an unsupported state:
missing policy means "no overrides", never "ineligible".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType

from wic_eligibility.schemas.apl import AdditionalRestrictions, as_utc
from wic_eligibility.schemas.policy import ContractBrandWindow, SpecialRule, StatePolicy


class StatePolicyRegistry:
    """Immutable mapping of state code → policy."""

    def __init__(self, policies: Iterable[StatePolicy]) -> None:
        self._policies: Mapping[str, StatePolicy] = MappingProxyType(
            {policy.state: policy for policy in policies}
        )

    @staticmethod
    def _key(state: str) -> str:
        return state.strip().upper()

    # ── Accessors ────────────────────────────────────────────────────

    def get_policy(self, state: str) -> StatePolicy | None:
        return self._policies.get(self._key(state))

    def is_supported(self, state: str) -> bool:
        return self._key(state) in self._policies

    def supported_states(self) -> list[str]:
        return sorted(self._policies)

    def get_category_restrictions(self, state: str, category: str) -> AdditionalRestrictions | None:
        """Category override for a state (category matched case-insensitively)."""
        policy = self.get_policy(state)
        if policy is None:
            return None
        return policy.category_restrictions.get(category.strip().lower())

    def get_contract_window(self, state: str, category: str | None = None) -> ContractBrandWindow | None:
        """The state's contract-brand window, optionally only if it covers `category`."""
        policy = self.get_policy(state)
        if policy is None or policy.contract_brand is None:
            return None
        if category is not None and not policy.contract_brand.covers(category):
            return None
        return policy.contract_brand

    def get_contract_brand(self, state: str, as_of: datetime | None = None) -> str | None:
        """Active contract brand name, or None outside the validity window."""
        window = self.get_contract_window(state)
        if window is None:
            return None
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        return window.brand if window.is_active(as_of) else None

    def get_special_rules(self, state: str) -> list[SpecialRule]:
        policy = self.get_policy(state)
        return list(policy.special_rules) if policy else []

    def has_special_rule(self, state: str, rule_id: str) -> bool:
        return any(rule.id == rule_id for rule in self.get_special_rules(state))

    def policy_summary(self, state: str) -> str:
        """Human-readable policy summary used by the CLI and API."""
        policy = self.get_policy(state)
        if policy is None:
            return f"State {self._key(state)} is not currently supported."

        lines = [
            f"{policy.display_name} WIC Policy",
            f"Processor: {policy.processor.value.upper()}",
        ]
        if policy.contract_brand:
            lines.append(f"Formula Contract: {policy.contract_brand.brand}")

        if policy.notes:
            lines.append("")
            lines.append("Notes:")
            lines.extend(f"  - {note}" for note in policy.notes)

        if policy.special_rules:
            lines.append("")
            lines.append("Special Rules:")
            lines.extend(f"  - {rule.name}: {rule.description}" for rule in policy.special_rules)

        return "\n".join(lines)
