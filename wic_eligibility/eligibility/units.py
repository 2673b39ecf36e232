"""Fixed unit-conversion table for size restrictions.

Deliberately bounded: weight (oz, lb, g, kg), volume (gal, qt, pt, ml, l,
and fluid oz) and count (ct, doz). A pair missing from the table is passed
through unconverted.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# (from_unit, to_unit) → multiplier
CONVERSIONS: dict[tuple[str, str], float] = {
    # ── Weight ───────────────────────────────────────────────────────
    ("oz", "lb"): 1 / 16,
    ("oz", "g"): 28.3495,
    ("oz", "kg"): 0.0283495,
    ("lb", "oz"): 16.0,
    ("lb", "g"): 453.592,
    ("lb", "kg"): 0.453592,
    ("g", "oz"): 0.035274,
    ("g", "lb"): 0.00220462,
    ("g", "kg"): 0.001,
    ("kg", "oz"): 35.274,
    ("kg", "lb"): 2.20462,
    ("kg", "g"): 1000.0,
    # ── Volume ───────────────────────────────────────────────────────
    ("gal", "qt"): 4.0,
    ("gal", "pt"): 8.0,
    ("gal", "oz"): 128.0,
    ("gal", "ml"): 3785.41,
    ("gal", "l"): 3.78541,
    ("qt", "gal"): 0.25,
    ("qt", "pt"): 2.0,
    ("qt", "oz"): 32.0,
    ("qt", "ml"): 946.353,
    ("qt", "l"): 0.946353,
    ("pt", "gal"): 0.125,
    ("pt", "qt"): 0.5,
    ("pt", "oz"): 16.0,
    ("pt", "ml"): 473.176,
    ("pt", "l"): 0.473176,
    ("ml", "gal"): 0.000264172,
    ("ml", "qt"): 0.00105669,
    ("ml", "pt"): 0.00211338,
    ("ml", "oz"): 0.033814,
    ("ml", "l"): 0.001,
    ("l", "gal"): 0.264172,
    ("l", "qt"): 1.05669,
    ("l", "pt"): 2.11338,
    ("l", "oz"): 33.814,
    ("l", "ml"): 1000.0,
    ("oz", "gal"): 1 / 128,
    ("oz", "qt"): 1 / 32,
    ("oz", "pt"): 1 / 16,
    ("oz", "ml"): 29.5735,
    ("oz", "l"): 0.0295735,
    # ── Count ────────────────────────────────────────────────────────
    ("ct", "doz"): 1 / 12,
    ("doz", "ct"): 12.0,
}

SUPPORTED_UNITS: frozenset[str] = frozenset(unit for pair in CONVERSIONS for unit in pair)

# Converted sizes are compared exactly against restriction values.
_PRECISION = 4


def convert_size(size: float, from_unit: str | None, to_unit: str) -> float:
    """Express `size` (in `from_unit`) in `to_unit`.

    Same unit (case-insensitive), a missing caller unit, or an unknown pair
    returns `size` unchanged.
    """
    source = (from_unit or "").strip().lower()
    target = to_unit.strip().lower()
    if not source or source == target:
        return size

    factor = CONVERSIONS.get((source, target))
    if factor is None:
        logger.debug("No conversion from %s to %s, comparing unconverted", source, target)
        return size
    return round(size * factor, _PRECISION)
