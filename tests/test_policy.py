"""Tests for the state policy registry.

Covers:
- Built-in MI/NC/FL/OR policies: category overrides, contract brands, special rules
- Unsupported states return None/empty, never raise
- Contract-brand validity window
- Policy summary text
- Loading an alternate policy set from JSON
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from wic_eligibility.models.enums import Processor
from wic_eligibility.policy import build_policy_registry, default_policies, load_policies
from wic_eligibility.policy.registry import StatePolicyRegistry
from wic_eligibility.schemas.policy import StatePolicy


@pytest.fixture()
def registry() -> StatePolicyRegistry:
    return StatePolicyRegistry(default_policies())


class TestSupportedStates:
    def test_sorted(self, registry):
        assert registry.supported_states() == ["FL", "MI", "NC", "OR"]

    def test_case_insensitive(self, registry):
        assert registry.is_supported("mi") is True
        assert registry.is_supported(" or ") is True

    def test_unsupported(self, registry):
        assert registry.is_supported("TX") is False
        assert registry.get_policy("TX") is None

    def test_processor(self, registry):
        assert registry.get_policy("NC").processor == Processor.CONDUENT
        assert registry.get_policy("OR").processor == Processor.STATE


class TestCategoryRestrictions:
    def test_michigan_cereal(self, registry):
        r = registry.get_category_restrictions("MI", "cereal")
        assert r.whole_grain_required is True
        assert r.max_sugar_grams == 6

    def test_category_case_insensitive(self, registry):
        assert registry.get_category_restrictions("MI", "Cereal") is not None

    def test_florida_yogurt(self, registry):
        r = registry.get_category_restrictions("FL", "yogurt")
        assert r.max_sugar_grams == 30
        assert r.no_artificial_dyes is True

    def test_north_carolina_milk(self, registry):
        r = registry.get_category_restrictions("NC", "milk")
        assert r.fortification_required == ["Vitamin D"]

    def test_oregon_produce_organic_not_required(self, registry):
        assert registry.get_category_restrictions("OR", "produce").organic_required is False

    def test_unknown_category(self, registry):
        assert registry.get_category_restrictions("MI", "eggs") is None

    def test_unsupported_state(self, registry):
        assert registry.get_category_restrictions("TX", "cereal") is None


class TestContractBrand:
    def test_active_window(self, registry):
        as_of = datetime(2025, 6, 1, tzinfo=UTC)
        assert registry.get_contract_brand("MI", as_of) == "Similac"
        assert registry.get_contract_brand("NC", as_of) == "Enfamil"

    def test_naive_datetime_treated_as_utc(self, registry):
        assert registry.get_contract_brand("FL", datetime(2025, 6, 1)) == "Similac"

    def test_before_start(self, registry):
        assert registry.get_contract_brand("MI", datetime(2023, 9, 30, tzinfo=UTC)) is None

    def test_after_end(self, registry):
        assert registry.get_contract_brand("MI", datetime(2026, 10, 1, tzinfo=UTC)) is None

    def test_window_only_for_covered_category(self, registry):
        assert registry.get_contract_window("MI", "infant_formula").brand == "Similac"
        assert registry.get_contract_window("MI", "cereal") is None

    def test_window_without_category(self, registry):
        window = registry.get_contract_window("OR")
        assert window.start_date == datetime(2023, 10, 1, tzinfo=UTC)
        assert window.end_date == datetime(2026, 9, 30, tzinfo=UTC)

    def test_unsupported_state(self, registry):
        assert registry.get_contract_brand("TX") is None
        assert registry.get_contract_window("TX", "infant_formula") is None


class TestSpecialRules:
    def test_florida_dyes(self, registry):
        assert registry.has_special_rule("FL", "fl-artificial-dyes") is True
        assert registry.has_special_rule("MI", "fl-artificial-dyes") is False

    def test_oregon_rules(self, registry):
        ids = [r.id for r in registry.get_special_rules("OR")]
        assert ids == ["or-formula-contract", "or-organic-preference"]

    def test_unsupported_state_empty(self, registry):
        assert registry.get_special_rules("TX") == []


class TestPolicySummary:
    def test_michigan(self, registry):
        summary = registry.policy_summary("mi")
        lines = summary.splitlines()
        assert lines[0] == "Michigan WIC Policy"
        assert lines[1] == "Processor: FIS"
        assert lines[2] == "Formula Contract: Similac"
        assert "Notes:" in lines
        assert "Special Rules:" in lines
        assert "  - Infant Formula Contract Brand: Only Similac brand formula is WIC-approved (unless medical exemption)" in lines

    def test_north_carolina_processor(self, registry):
        assert "Processor: CONDUENT" in registry.policy_summary("NC")

    def test_unsupported(self, registry):
        assert registry.policy_summary("tx") == "State TX is not currently supported."


class TestRegistryImmutable:
    def test_source_list_mutation_ignored(self):
        policies = default_policies()
        registry = StatePolicyRegistry(policies)
        policies.clear()
        assert registry.is_supported("MI") is True

    def test_mapping_read_only(self, registry):
        with pytest.raises(TypeError):
            registry._policies["TX"] = registry.get_policy("MI")  # type: ignore[index]


class TestLoadPolicies:
    @pytest.fixture()
    def policy_file(self, tmp_path):
        path = tmp_path / "policies.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "state": "tx",
                        "display_name": "Texas",
                        "processor": "state",
                        "category_restrictions": {"Cereal": {"maxSugarGrams": 8, "wholeGrainRequired": True}},
                        "contract_brand": {"brand": "Gerber", "start_date": "2024-01-01T00:00:00Z"},
                    }
                ]
            ),
            encoding="utf-8",
        )
        return path

    def test_load(self, policy_file):
        (policy,) = load_policies(policy_file)
        assert isinstance(policy, StatePolicy)
        assert policy.state == "TX"
        assert policy.category_restrictions["cereal"].max_sugar_grams == 8

    def test_build_from_file(self, policy_file):
        registry = build_policy_registry(str(policy_file))
        assert registry.supported_states() == ["TX"]
        assert registry.get_contract_brand("TX", datetime(2030, 1, 1, tzinfo=UTC)) == "Gerber"

    def test_build_default_when_empty(self):
        assert build_policy_registry("").supported_states() == ["FL", "MI", "NC", "OR"]
