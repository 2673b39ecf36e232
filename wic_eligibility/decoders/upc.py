"""UPC / EAN barcode normalization.

Pure Python — no DB. Reconciles the barcode variants seen in the wild (UPC-A,
UPC-E, EAN-13, GTIN-14, stray hyphens and spaces, dropped leading zeros) into
comparable forms used as registry lookup keys.

Formats:
  - UPC-A:   12 digits  N MMMMM PPPPP C
  - UPC-E:    8 digits  zero-suppressed UPC-A (expanded to its UPC-A form)
  - EAN-13:  13 digits  UPC-A with a leading "0"
  - GTIN-14: 14 digits  packaging indicator + EAN-13

Only the digit count is validated. The trailing check digit is reported but
never used to reject a code: upstream state files contain codes whose check
digits do not verify and those rows still have to match.
"""

from __future__ import annotations

import re
from functools import lru_cache

from wic_eligibility.schemas.apl import CodeVariantSet

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_NON_DIGITS = re.compile(r"[^0-9]")

MIN_DIGITS = 8
MAX_DIGITS = 14
UPC_A_LENGTH = 12
UPC_E_LENGTH = 8
EAN_13_PREFIX = "0"


def _digits(raw: str) -> str:
    return _NON_DIGITS.sub("", raw)


def _to_upc12(cleaned: str) -> str:
    """Pad to 12 digits; longer codes shed leading zeros down to 12 where possible."""
    if len(cleaned) <= UPC_A_LENGTH:
        return cleaned.zfill(UPC_A_LENGTH)
    significant = cleaned.lstrip("0")
    if len(significant) <= UPC_A_LENGTH:
        return significant.zfill(UPC_A_LENGTH)
    return significant


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=4096)
def normalize_upc(raw: str) -> CodeVariantSet:
    """Normalize a raw barcode string into its comparable variants.

    Args:
        raw: Barcode as scanned or typed, e.g. "0-16000-27528-7" or "16000275287".

    Returns:
        CodeVariantSet. When the code has fewer than 8 or more than 14 digits,
        only `original` is populated and `is_valid` is False.
    """
    cleaned = _digits(raw)

    if not MIN_DIGITS <= len(cleaned) <= MAX_DIGITS:
        return CodeVariantSet(original=raw, is_valid=False)

    padded = _to_upc12(cleaned)
    # Scanners report UPC-E as 8 digits; registry rows hold the UPC-A form.
    upc12 = expand_upce(cleaned) if len(cleaned) == UPC_E_LENGTH else padded
    ean13 = EAN_13_PREFIX + upc12 if len(upc12) == UPC_A_LENGTH else upc12.zfill(13)
    trimmed = cleaned.lstrip("0") or "0"

    return CodeVariantSet(
        original=raw,
        upc12=upc12,
        ean13=ean13,
        padded=padded if padded != upc12 else "",
        trimmed=trimmed,
        check_digit=cleaned[-1],
        is_valid=True,
    )


def generate_upc_variants(raw: str) -> list[str]:
    """All strings worth trying against the registry for `raw`."""
    return normalize_upc(raw).lookup_codes()


def expand_upce(upce: str) -> str:
    """Expand a zero-suppressed 8-digit UPC-E code to 12-digit UPC-A.

    Anything that is not exactly 8 digits is returned zero-padded to 12.
    """
    if len(upce) != 8 or not upce.isdigit():
        return upce.zfill(UPC_A_LENGTH)

    number_system = upce[0]
    middle = upce[1:7]
    check = upce[7]
    last = middle[5]

    if last in "012":
        manufacturer = middle[0:2] + last + "00"
        product = "00" + middle[2:5]
    elif last == "3":
        manufacturer = middle[0:3] + "00"
        product = "000" + middle[3:5]
    elif last == "4":
        manufacturer = middle[0:4] + "0"
        product = "0000" + middle[4]
    else:
        manufacturer = middle[0:5]
        product = "0000" + last

    return number_system + manufacturer + product + check


def calculate_check_digit(body: str) -> str:
    """GS1 mod-10 check digit for a code body given without its check digit.

    Weights alternate 3,1,3,... starting from the rightmost body digit, which
    covers UPC-A (11-digit body) and EAN-13 (12-digit body) alike.
    """
    total = sum(int(d) * (3 if i % 2 == 0 else 1) for i, d in enumerate(reversed(body)))
    return str((10 - total % 10) % 10)


def validate_check_digit(code: str) -> bool:
    """Diagnostic only: does the trailing digit of a 12/13-digit code verify?"""
    cleaned = _digits(code)
    if len(cleaned) not in (12, 13):
        return False
    return calculate_check_digit(cleaned[:-1]) == cleaned[-1]


def format_upc_for_display(raw: str) -> str:
    """Hyphenate as N-MMMMM-PPPPP-C, e.g. 011110416605 → 0-11110-41660-5."""
    variants = normalize_upc(raw)
    if not variants.is_valid or len(variants.upc12) != UPC_A_LENGTH:
        return raw
    u = variants.upc12
    return f"{u[0]}-{u[1:6]}-{u[6:11]}-{u[11]}"


def are_upcs_equivalent(first: str, second: str) -> bool:
    """True if both codes are valid and share the same 12-digit form."""
    a = normalize_upc(first)
    b = normalize_upc(second)
    if not a.is_valid or not b.is_valid:
        return False
    return a.upc12 == b.upc12
