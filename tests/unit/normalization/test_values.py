"""Test meter, amount and usage-unit normalization."""
import pytest
from bill_ingestion.models.items import Utility
from bill_ingestion.normalization.values import (
    derive_usage,
    normalize_item,
    normalize_meter,
    parse_amount,
    rescale_mcf,
)
from tests.factories import make_item


class TestNormalizeMeter:
    def test_strips_whitespace_and_uppercases(self):
        assert normalize_meter(" ab 12 3 ") == "AB123"

    def test_empty(self):
        assert normalize_meter(None) == ""


class TestParseAmount:
    @pytest.mark.parametrize("raw,expected", [
        ("$1,234.56", 1234.56),
        ("(12.50)", -12.5),
        ("12.50-", -12.5),
        ("12.50CR", -12.5),
        ("-3", -3.0),
        ("42", 42.0),
    ])
    def test_values(self, raw, expected):
        assert parse_amount(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "", "n/a", "$"])
    def test_unparseable(self, raw):
        assert parse_amount(raw) is None


class TestRescaleMcf:
    def test_thousands_scaled_reading(self):
        assert rescale_mcf(42000) == 42.0

    def test_ordinary_reading_untouched(self):
        assert rescale_mcf(1234) == 1234

    def test_small_values_rounded(self):
        assert rescale_mcf(4.12345) == 4.123

    def test_none(self):
        assert rescale_mcf(None) is None


class TestNormalizeItem:
    def test_meter_and_mcf(self):
        item = normalize_item(make_item(meter_no="abc 123", usage_mcf=42000.0))
        assert item.meter_no == "ABC123"
        assert item.usage_mcf == 42.0

    def test_blank_meter_becomes_none(self):
        assert normalize_item(make_item(meter_no="  ")).meter_no is None


class TestDeriveUsage:
    def test_electric_keeps_kwh_only(self):
        units = derive_usage(Utility.ELECTRIC, kwh=15200.0, mcf=3.0)
        assert units.usage_kwh == 15200.0
        assert units.usage_mcf is None and units.usage_mmbtu is None

    def test_electric_generic_usage_is_kwh(self):
        assert derive_usage(Utility.ELECTRIC, usage=900).usage_kwh == 900

    def test_gas_mcf_to_mmbtu(self):
        units = derive_usage(Utility.GAS, mcf=10.0, heat_content=1.036)
        assert units.usage_mcf == 10.0
        assert units.usage_mmbtu == pytest.approx(10.36)

    def test_gas_ccf(self):
        units = derive_usage(Utility.GAS, ccf=420.0)
        assert units.usage_mcf == 42.0

    def test_gas_therms(self):
        units = derive_usage(Utility.GAS, therms=100.0, heat_content=1.0)
        assert units.usage_mmbtu == 10.0
        assert units.usage_mcf == 10.0
        assert units.therms == 100.0

    def test_gas_mmbtu_to_mcf(self):
        units = derive_usage(Utility.GAS, mmbtu=1036.0, heat_content=1.036)
        assert units.usage_mcf == pytest.approx(1000.0)

    def test_gas_generic_usage_is_mcf(self):
        assert derive_usage(Utility.GAS, usage=5).usage_mcf == 5

    def test_nothing_present(self):
        assert not derive_usage(Utility.GAS).any_present()
