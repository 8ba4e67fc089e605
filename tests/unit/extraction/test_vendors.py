"""Test the vendor template extractors and classification."""
import pytest
from bill_ingestion.extraction.classifier import EXTRACTORS, classify_and_extract, get_extractor
from bill_ingestion.extraction.evergy import ChargeColumns, EvergyExtractor
from bill_ingestion.extraction.kgs import KgsExtractor
from bill_ingestion.extraction.woodriver import WoodRiverExtractor
from bill_ingestion.models.items import Vendor
from tests.factories import EVERGY_TEXT, KGS_TEXT, KGS_TWO_METER_TEXT, WOODRIVER_TEXT, make_doc


class TestEvergyExtractor:
    def test_single_column_bill(self):
        result = EvergyExtractor().extract(make_doc(EVERGY_TEXT))
        assert result.vendor == Vendor.EVERGY
        assert len(result.items) == 1
        item = result.items[0]
        assert item.service_address == "3012 N TRIPPLE CREEK DR"
        assert item.meter_no == "12345678"
        assert item.period_start == "01/05/25"
        assert item.period_end == "02/04/25"
        assert item.usage_kwh == 15200.0
        assert item.total_cost == 1234.56
        assert item.demand_cost == 312.40
        assert result.document_total == 1234.56

    def test_private_use_dollar_glyph(self):
        text = EVERGY_TEXT.replace("$1,234.56", "\ue000 1,234.56")
        item = EvergyExtractor().extract(make_doc(text)).items[0]
        assert item.total_cost == 1234.56

    def test_missing_grid_falls_back_to_banner_period(self):
        text = EVERGY_TEXT.split("--- PAGE 2 ---")[0]
        item = EvergyExtractor().extract(make_doc(text)).items[0]
        assert item.meter_no is None
        assert item.usage_kwh is None
        assert (item.period_start, item.period_end) == ("01/05/25", "02/04/25")
        assert any("CURRENT CHARGES block not found" in h for h in item.hints)

    def test_meter_read_difference(self):
        text = EVERGY_TEXT.replace(
            "Energy use kWh 15,200",
            "Present meter read 12,500\nPrevious meter read 12,000\nBilling multiplier 40",
        )
        item = EvergyExtractor().extract(make_doc(text)).items[0]
        assert item.usage_kwh == 20000.0


class TestChargeColumns:
    def test_prefers_wsses(self):
        cols = ChargeColumns(["LGS", "WSSES"], ["1", "2"], [(None, None)] * 2, [500.0, 0.0], [None, None])
        assert cols.pick_index() == 1

    def test_first_column_with_kwh(self):
        cols = ChargeColumns(["A01", "B02"], ["1", "2"], [(None, None)] * 2, [0.0, 300.0], [None, None])
        assert cols.pick_index() == 1

    def test_default_first(self):
        cols = ChargeColumns(["A01"], ["1"], [(None, None)], [None], [None])
        assert cols.pick_index() == 0


class TestKgsExtractor:
    def test_summary_bill(self):
        result = KgsExtractor().extract(make_doc(KGS_TEXT))
        assert len(result.items) == 1
        item = result.items[0]
        assert item.meter_no == "ABC1234567"
        assert (item.period_start, item.period_end) == ("01-05-25", "02-04-25")
        assert item.service_address == "1200 W MAIN ST"
        assert item.section_total_cost == 245.67
        # Kept as printed; the normalizer rescales thousands-scaled readings.
        assert item.usage_mcf == 42000.0
        assert result.document_total == 245.67

    def test_two_meters_scoped_to_their_boxes(self):
        result = KgsExtractor().extract(make_doc(KGS_TWO_METER_TEXT))

        # Page 1 rows and the repeated page 2 rows each open a section.
        assert [i.meter_no for i in result.items] == ["ABC1234567", "XYZ7654321"] * 2
        by_meter = {i.meter_no: i for i in result.items}
        first, second = by_meter["ABC1234567"], by_meter["XYZ7654321"]
        assert first.service_address == "1200 W MAIN ST"
        assert (first.section_total_cost, first.usage_mcf) == (245.67, 42000.0)
        assert second.service_address == "2400 E OAK AVE"
        assert (second.section_total_cost, second.usage_mcf) == (88.10, 12000.0)
        for a, b in zip(result.items[:2], result.items[2:]):
            assert (a.section_total_cost, a.usage_mcf) == (b.section_total_cost, b.usage_mcf)
        assert result.document_total == 333.77

    def test_no_anchor_rows(self):
        result = KgsExtractor().extract(make_doc("Kansas Gas Service\nNothing here"))
        assert result.items == []
        assert result.score == 0


class TestWoodRiverExtractor:
    def test_delivery_points(self):
        result = WoodRiverExtractor().extract(make_doc(WOODRIVER_TEXT))
        assert [i.meter_no for i in result.items] == ["KS00123", "KS00456"]
        first, second = result.items
        assert first.service_address == "3012 N TRIPPLE CREEK DR"
        assert (first.period_start, first.period_end) == ("2025-01-01", "2025-01-31")
        assert first.usage_mmbtu == 1250.5
        assert first.section_total_cost == 4064.13
        assert second.service_address == "500 E 3RD ST"
        assert second.usage_mmbtu == 300.0
        assert second.section_total_cost == 975.00
        assert result.layout_bonus == 1

    def test_layout_signature_without_vendor_name(self):
        text = WOODRIVER_TEXT.replace("WoodRiver Energy, LLC", "Supply invoice")
        assert WoodRiverExtractor().matches_signature(text)


class TestClassifier:
    @pytest.mark.parametrize("text,vendor", [
        (EVERGY_TEXT, Vendor.EVERGY),
        (KGS_TEXT, Vendor.KGS),
        (WOODRIVER_TEXT, Vendor.WOODRIVER),
    ])
    def test_signature_match(self, text, vendor):
        result = classify_and_extract(make_doc(text))
        assert result.vendor == vendor
        assert result.method == "signature"

    def test_scored_when_no_signature(self):
        text = "\n".join(line for line in KGS_TEXT.splitlines() if "Kansas" not in line and "ONE Gas" not in line
                         and "MCF" not in line)
        result = classify_and_extract(make_doc(text))
        assert result.method == "scored"
        assert set(result.scores) == {"woodriver", "kgs", "evergy"}
        assert result.vendor == Vendor.KGS

    def test_get_extractor(self):
        assert isinstance(get_extractor(Vendor.KGS), KgsExtractor)
        with pytest.raises(ValueError):
            get_extractor(Vendor.UNKNOWN)

    def test_registry_order(self):
        assert [e.vendor for e in EXTRACTORS] == [Vendor.WOODRIVER, Vendor.KGS, Vendor.EVERGY]
