"""Tests for UPC/EAN normalization.

Covers:
- Digit extraction and the 8-14 digit validity window
- 12/13/14-digit forms and leading-zero reconciliation
- Lookup candidate ordering and de-duplication
- Check digit helpers (diagnostic only, never used for rejection)
- UPC-E expansion, display formatting, equivalence
"""

from __future__ import annotations

import pytest

from wic_eligibility.decoders.upc import (
    are_upcs_equivalent,
    calculate_check_digit,
    expand_upce,
    format_upc_for_display,
    generate_upc_variants,
    normalize_upc,
    validate_check_digit,
)


class TestNormalizeValid:
    def test_hyphenated_upc_a(self):
        v = normalize_upc("0-16000-27528-7")
        assert v.is_valid is True
        assert v.original == "0-16000-27528-7"
        assert v.upc12 == "016000275287"
        assert v.ean13 == "0016000275287"
        assert v.trimmed == "16000275287"
        assert v.check_digit == "7"

    def test_dropped_leading_zero_padded(self):
        assert normalize_upc("16000275287").upc12 == "016000275287"

    def test_ean13_sheds_leading_zero(self):
        v = normalize_upc("0016000275287")
        assert v.upc12 == "016000275287"
        assert v.ean13 == "0016000275287"

    def test_eight_digits_expanded_as_upce(self):
        v = normalize_upc("04252614")
        assert v.is_valid is True
        assert v.upc12 == "042100005264"
        assert v.ean13 == "0042100005264"
        assert v.padded == "000004252614"
        assert v.trimmed == "4252614"
        assert v.check_digit == "4"

    def test_upce_keeps_padded_candidate(self):
        assert normalize_upc("04252614").lookup_codes() == [
            "042100005264",
            "0042100005264",
            "000004252614",
            "4252614",
            "04252614",
        ]

    def test_upce_equivalent_to_upc_a(self):
        assert are_upcs_equivalent("04252614", "0-42100-00526-4") is True

    def test_longer_codes_have_no_padded_form(self):
        assert normalize_upc("016000275287").padded == ""

    def test_spaces_stripped(self):
        assert normalize_upc(" 0 16000 27528 7 ").upc12 == "016000275287"

    def test_fourteen_digits_without_leading_zeros_kept(self):
        v = normalize_upc("10016000275284")
        assert v.is_valid is True
        assert v.upc12 == "10016000275284"
        assert v.check_digit == "4"

    def test_gtin14_with_zero_indicator(self):
        assert normalize_upc("00016000275287").upc12 == "016000275287"

    def test_all_zeros_trimmed_to_single_zero(self):
        assert normalize_upc("00000000").trimmed == "0"

    def test_bad_check_digit_still_valid(self):
        """Upstream files carry codes whose check digit does not verify."""
        v = normalize_upc("016000275280")
        assert v.is_valid is True
        assert v.upc12 == "016000275280"


class TestNormalizeInvalid:
    @pytest.mark.parametrize("raw", ["", "abc", "1234567", "123456789012345", "12-34-56"])
    def test_invalid_lengths(self, raw):
        v = normalize_upc(raw)
        assert v.is_valid is False
        assert v.original == raw
        assert v.upc12 == ""

    def test_invalid_lookup_codes_only_original(self):
        assert normalize_upc("1234567").lookup_codes() == ["1234567"]

    def test_empty_lookup_codes(self):
        assert normalize_upc("").lookup_codes() == []


class TestLookupCodes:
    def test_priority_order(self):
        codes = normalize_upc("0-16000-27528-7").lookup_codes()
        assert codes == ["016000275287", "0016000275287", "16000275287", "0-16000-27528-7"]

    def test_deduplicated(self):
        codes = generate_upc_variants("16000275287")
        assert codes == ["016000275287", "0016000275287", "16000275287"]
        assert len(codes) == len(set(codes))


class TestCheckDigit:
    def test_upc_a(self):
        assert calculate_check_digit("03600029145") == "2"

    def test_ean13(self):
        assert calculate_check_digit("400638133393") == "1"

    def test_validate_good(self):
        assert validate_check_digit("036000291452") is True
        assert validate_check_digit("4006381333931") is True

    def test_validate_bad(self):
        assert validate_check_digit("036000291453") is False

    def test_validate_wrong_length(self):
        assert validate_check_digit("12345678") is False


class TestExpandUpcE:
    def test_last_digit_one(self):
        assert expand_upce("04252614") == "042100005264"

    def test_last_digit_three(self):
        assert expand_upce("01234535") == "012300000455"

    def test_last_digit_four(self):
        assert expand_upce("01234546") == "012340000056"

    def test_last_digit_high(self):
        assert expand_upce("01234587") == "012345000087"

    def test_non_upce_padded(self):
        assert expand_upce("12345") == "000000012345"


class TestDisplayAndEquivalence:
    def test_format(self):
        assert format_upc_for_display("011110416605") == "0-11110-41660-5"

    def test_format_pads(self):
        assert format_upc_for_display("11110416605") == "0-11110-41660-5"

    def test_format_invalid_passthrough(self):
        assert format_upc_for_display("123") == "123"

    def test_equivalent_forms(self):
        assert are_upcs_equivalent("0016000275287", "16000275287") is True

    def test_not_equivalent(self):
        assert are_upcs_equivalent("016000275287", "016000275288") is False

    def test_invalid_never_equivalent(self):
        assert are_upcs_equivalent("123", "123") is False
