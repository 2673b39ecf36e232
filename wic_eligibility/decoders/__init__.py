"""Deterministic data decoders — barcode normalization."""

from wic_eligibility.decoders.upc import (
    are_upcs_equivalent,
    format_upc_for_display,
    generate_upc_variants,
    normalize_upc,
)

__all__ = [
    "normalize_upc",
    "generate_upc_variants",
    "format_upc_for_display",
    "are_upcs_equivalent",
]
