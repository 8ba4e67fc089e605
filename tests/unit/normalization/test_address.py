"""Test street-address normalization and matching keys."""
import pytest
from bill_ingestion.normalization.address import (
    address_key,
    clean_address_raw,
    loose_key,
    normalize_address,
)


class TestNormalizeAddress:
    def test_folds_punctuation_directional_and_suffix(self):
        assert normalize_address("3012 N. Tripple Creek Drive") == "3012 N TRIPPLE CREEK DR"

    def test_spelled_out_directional(self):
        assert normalize_address("100 North Main Street") == "100 N MAIN ST"

    def test_trailing_directional_kept_as_street_name(self):
        assert normalize_address("100 North") == "100 NORTH"

    def test_misspelling_preserved(self):
        assert "TRIPPLE" in normalize_address("3012 Tripple Creek Dr")

    @pytest.mark.parametrize("raw", [
        "3012 N. Tripple Creek Drive",
        "  500 e 3rd  St. ",
        "1200 West Main Avenue #4",
        "100 North",
        "",
    ])
    def test_idempotent(self, raw):
        once = normalize_address(raw)
        assert normalize_address(once) == once

    def test_empty(self):
        assert normalize_address(None) == ""
        assert normalize_address("   ") == ""


class TestCleanAddressRaw:
    def test_drops_label_before_house_number(self):
        assert clean_address_raw("Location: 1200 W Main St") == "1200 W MAIN ST"

    def test_drops_per_mcf_tail(self):
        assert clean_address_raw("1200 W Main St Per MCF 4.25") == "1200 W MAIN ST"


class TestLooseKey:
    def test_house_number_and_street_prefix(self):
        assert loose_key("3012 N Tripple Creek Dr") == "3012 TRIPP"

    def test_abbreviated_suffix_agrees(self):
        assert loose_key("3012 N TRIPPLE CRK") == loose_key("3012 Tripple Creek Drive")

    def test_no_house_number(self):
        assert loose_key("Main Street") is None

    def test_only_directionals(self):
        assert loose_key("12 N") is None


class TestAddressKey:
    def test_joins_normalized_parts(self):
        key = address_key("1200 W. Main Street", "wichita", "ks", "67203-1234")
        assert key == "1200 W MAIN ST|WICHITA|KS|67203"
