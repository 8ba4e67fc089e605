"""Test same-key merging and its determinism."""
import itertools
from bill_ingestion.merging.dedup import dedupe_and_merge, group_key, merge_two
from bill_ingestion.models.items import Vendor
from tests.factories import make_item


class TestGroupKey:
    def test_meter_first(self):
        assert group_key(make_item(meter_no=" abc 123 ")) == "M::ABC123"

    def test_address_when_no_meter(self):
        assert group_key(make_item(meter_no=None, service_address="1200 W. Main Street")) == "A::1200 W MAIN ST"

    def test_no_key(self):
        assert group_key(make_item(meter_no=None, service_address=None)) is None


class TestMergeTwo:
    def test_first_present_value_wins(self):
        a = make_item(total_cost=None, usage_mcf=10.0, hints=["a"])
        b = make_item(total_cost=99.0, usage_mcf=20.0, hints=["b"])
        merged = merge_two(a, b)
        assert merged.total_cost == 99.0
        assert merged.usage_mcf == 10.0
        assert merged.hints == ["a", "b"]

    def test_unknown_vendor_replaced(self):
        merged = merge_two(make_item(vendor=Vendor.UNKNOWN), make_item(vendor=Vendor.KGS))
        assert merged.vendor == Vendor.KGS


class TestDedupeAndMerge:
    def test_same_meter_items_merge(self):
        items = [
            make_item(meter_no="ABC123", service_address=None, usage_mcf=None, section_total_cost=50.0),
            make_item(meter_no="ABC123", service_address="1 MAIN ST", usage_mcf=4.2, section_total_cost=None),
        ]
        merged = dedupe_and_merge(items)
        assert len(merged) == 1
        assert merged[0].merged_from == 2
        assert merged[0].service_address == "1 MAIN ST"
        assert merged[0].usage_mcf == 4.2
        assert merged[0].section_total_cost == 50.0

    def test_keyless_items_never_merge(self):
        items = [make_item(meter_no=None, service_address=None), make_item(meter_no=None, service_address=None)]
        assert len(dedupe_and_merge(items)) == 2

    def test_first_seen_group_order(self):
        items = [make_item(meter_no="B"), make_item(meter_no="A"), make_item(meter_no="B")]
        assert [m.meter_no for m in dedupe_and_merge(items)] == ["B", "A"]

    def test_order_independent(self):
        items = [
            make_item(meter_no="ABC123", total_cost=10.0, section_total_cost=None, hints=["x"]),
            make_item(meter_no="ABC123", total_cost=20.0, section_total_cost=None, hints=["y"]),
            make_item(meter_no="ABC123", total_cost=None, demand_cost=5.0, hints=["z"]),
        ]
        results = {
            dedupe_and_merge(list(perm))[0].model_dump_json()
            for perm in itertools.permutations(items)
        }
        assert len(results) == 1

    def test_scored(self):
        merged = dedupe_and_merge([make_item()], threshold=7)[0]
        assert merged.confidence == 9
        assert merged.auto_approved

    def test_re_merging_merged_items_sums_counts(self):
        first = dedupe_and_merge([make_item(), make_item()])
        again = dedupe_and_merge(first + [make_item()])
        assert again[0].merged_from == 3
