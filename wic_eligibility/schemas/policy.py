"""Pydantic schemas for state WIC policy configuration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wic_eligibility.models.enums import Processor
from wic_eligibility.schemas.apl import AdditionalRestrictions, UtcDatetime


def _normalize_category(category: str) -> str:
    return category.strip().lower()


class ContractBrandWindow(BaseModel):
    """The single brand approved for a controlled category, and when."""

    model_config = ConfigDict(frozen=True)

    brand: str
    start_date: UtcDatetime
    end_date: UtcDatetime | None = None
    categories: tuple[str, ...] = ("infant_formula",)

    @field_validator("categories")
    @classmethod
    def normalize_categories(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(_normalize_category(c) for c in v)

    def is_active(self, as_of: datetime) -> bool:
        if self.start_date > as_of:
            return False
        return self.end_date is None or self.end_date >= as_of

    def covers(self, category: str) -> bool:
        return _normalize_category(category) in self.categories


class SpecialRule(BaseModel):
    """Named state rule used for display and explanation, not evaluated directly."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    applicable_categories: tuple[str, ...] = ()


class StatePolicy(BaseModel):
    """Everything the engine needs to know about one jurisdiction."""

    model_config = ConfigDict(frozen=True)

    state: str
    display_name: str
    processor: Processor
    category_restrictions: dict[str, AdditionalRestrictions] = Field(default_factory=dict)
    contract_brand: ContractBrandWindow | None = None
    notes: tuple[str, ...] = ()
    special_rules: tuple[SpecialRule, ...] = ()

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("category_restrictions")
    @classmethod
    def normalize_category_keys(
        cls, v: dict[str, AdditionalRestrictions]
    ) -> dict[str, AdditionalRestrictions]:
        return {_normalize_category(k): r for k, r in v.items()}
