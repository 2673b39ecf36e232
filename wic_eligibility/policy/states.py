"""Built-in WIC policies for the supported states (MI, NC, FL, OR).

Category overrides apply when a registry entry carries no restrictions of
its own. Contract windows follow the 2023 state formula rebid cycle.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from wic_eligibility.models.enums import Processor
from wic_eligibility.schemas.apl import AdditionalRestrictions
from wic_eligibility.schemas.policy import ContractBrandWindow, SpecialRule, StatePolicy

_CONTRACT_START = datetime(2023, 10, 1, tzinfo=UTC)
_CONTRACT_END = datetime(2026, 9, 30, tzinfo=UTC)


def _formula_contract(brand: str) -> ContractBrandWindow:
    return ContractBrandWindow(brand=brand, start_date=_CONTRACT_START, end_date=_CONTRACT_END)


def _formula_rule(state: str, brand: str) -> SpecialRule:
    return SpecialRule(
        id=f"{state.lower()}-formula-contract",
        name="Infant Formula Contract Brand",
        description=f"Only {brand} brand formula is WIC-approved (unless medical exemption)",
        applicable_categories=("infant_formula",),
    )


# ── Michigan ─────────────────────────────────────────────────────────


def michigan() -> StatePolicy:
    return StatePolicy(
        state="MI",
        display_name="Michigan",
        processor=Processor.FIS,
        category_restrictions={
            "cereal": AdditionalRestrictions(
                whole_grain_required=True,
                max_sugar_grams=6,
                restriction_notes="Must be whole grain with ≤6g sugar per serving",
            ),
            "bread": AdditionalRestrictions(
                whole_grain_required=True,
                restriction_notes="Must be whole grain",
            ),
            "juice": AdditionalRestrictions(
                max_sugar_grams=120,
                restriction_notes="100% juice, no added sugar",
            ),
        },
        contract_brand=_formula_contract("Similac"),
        notes=(
            "Michigan uses FIS (Custom Data Processing) as eWIC processor",
            "Formula contract brand: Similac (through Sept 2026)",
            "Whole grain required for cereal and bread",
        ),
        special_rules=(_formula_rule("MI", "Similac"),),
    )


# ── North Carolina ───────────────────────────────────────────────────


def north_carolina() -> StatePolicy:
    return StatePolicy(
        state="NC",
        display_name="North Carolina",
        processor=Processor.CONDUENT,
        category_restrictions={
            "cereal": AdditionalRestrictions(
                whole_grain_required=True,
                max_sugar_grams=6,
                restriction_notes="Whole grain with ≤6g sugar per dry ounce",
            ),
            "bread": AdditionalRestrictions(whole_grain_required=True),
            "milk": AdditionalRestrictions(
                fortification_required=["Vitamin D"],
                restriction_notes="Must be Vitamin D fortified",
            ),
        },
        contract_brand=_formula_contract("Enfamil"),
        notes=(
            "North Carolina uses Conduent as eWIC processor",
            "Formula contract brand: Enfamil (through Sept 2026)",
            "Milk must be Vitamin D fortified",
        ),
        special_rules=(_formula_rule("NC", "Enfamil"),),
    )


# ── Florida ──────────────────────────────────────────────────────────


def florida() -> StatePolicy:
    return StatePolicy(
        state="FL",
        display_name="Florida",
        processor=Processor.FIS,
        category_restrictions={
            "cereal": AdditionalRestrictions(
                whole_grain_required=True,
                max_sugar_grams=6,
                no_artificial_dyes=True,
                restriction_notes="Whole grain, ≤6g sugar, no artificial dyes",
            ),
            "bread": AdditionalRestrictions(whole_grain_required=True, no_artificial_dyes=True),
            "yogurt": AdditionalRestrictions(
                max_sugar_grams=30,
                no_artificial_dyes=True,
                restriction_notes="≤30g sugar per container, no artificial dyes",
            ),
        },
        contract_brand=_formula_contract("Similac"),
        notes=(
            "Florida uses FIS (Custom Data Processing) as eWIC processor",
            "Formula contract brand: Similac (through Sept 2026)",
            "Artificial dyes prohibited in cereal, bread, and yogurt",
        ),
        special_rules=(
            SpecialRule(
                id="fl-artificial-dyes",
                name="No Artificial Dyes",
                description="Florida prohibits artificial food dyes in WIC products",
                applicable_categories=("cereal", "bread", "yogurt"),
            ),
            _formula_rule("FL", "Similac"),
        ),
    )


# ── Oregon ───────────────────────────────────────────────────────────


def oregon() -> StatePolicy:
    return StatePolicy(
        state="OR",
        display_name="Oregon",
        processor=Processor.STATE,
        category_restrictions={
            "cereal": AdditionalRestrictions(
                whole_grain_required=True,
                max_sugar_grams=6,
                restriction_notes="Whole grain with ≤6g sugar per serving",
            ),
            "bread": AdditionalRestrictions(whole_grain_required=True),
            # Encouraged, not required
            "produce": AdditionalRestrictions(
                organic_required=False,
                restriction_notes="Organic options encouraged where available",
            ),
        },
        contract_brand=_formula_contract("Similac"),
        notes=(
            "Oregon uses state-specific eWIC system",
            "Formula contract brand: Similac (through Sept 2026)",
            "Emphasis on organic and local options",
        ),
        special_rules=(
            _formula_rule("OR", "Similac"),
            SpecialRule(
                id="or-organic-preference",
                name="Organic Preference",
                description="Oregon encourages organic options when available",
                applicable_categories=("produce", "milk", "eggs"),
            ),
        ),
    )


def default_policies() -> list[StatePolicy]:
    """The built-in policy set."""
    return [michigan(), north_carolina(), florida(), oregon()]


def load_policies(path: str | Path) -> list[StatePolicy]:
    """Load an alternate policy set from a JSON file.

    The file holds a list of objects shaped like StatePolicy, e.g.
    ``[{"state": "MI", "display_name": "Michigan", "processor": "fis", ...}]``.
    """
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    return [StatePolicy.model_validate(item) for item in payload]
