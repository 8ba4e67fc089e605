"""Test bill-item completeness and confidence scoring."""
import pytest
from bill_ingestion.models.confidence import (
    completeness_score,
    confidence_score,
    evaluate_confidence,
    is_auto_approved,
)
from tests.factories import make_item


class TestCompletenessScore:
    def test_counts_present_fields(self):
        assert completeness_score(make_item()) == 6

    def test_blank_text_not_counted(self):
        assert completeness_score(make_item(meter_no="  ")) == 5


class TestConfidenceScore:
    def test_full_item_scores_ten(self):
        item = make_item(total_cost=100.0, demand_cost=12.0)
        assert confidence_score(item) == 10

    def test_empty_item_scores_zero(self):
        item = make_item(
            meter_no=None, service_address=None, period_start=None, period_end=None,
            usage_mcf=None, section_total_cost=None,
        )
        assert confidence_score(item) == 0

    def test_invalid_dates_earn_nothing(self):
        assert confidence_score(make_item(period_end="not a date")) == confidence_score(make_item()) - 2

    @pytest.mark.parametrize("field", ["meter_no", "service_address", "usage_mcf", "section_total_cost"])
    def test_monotonic_in_fields(self, field):
        full = make_item()
        assert confidence_score(full.model_copy(update={field: None})) <= confidence_score(full)


class TestAutoApproval:
    def test_complete_item_approved(self):
        result = evaluate_confidence(make_item(), threshold=7)
        assert result.auto_approved
        assert result.reasons == []

    def test_missing_meter_never_approved(self):
        item = make_item(meter_no=None, total_cost=1.0, demand_cost=1.0)
        result = evaluate_confidence(item, threshold=0)
        assert not result.auto_approved
        assert "missing meter id" in result.reasons

    def test_threshold(self):
        assert is_auto_approved(make_item(), threshold=9)
        assert not is_auto_approved(make_item(), threshold=10)

    def test_missing_usage_blocks_approval(self):
        assert not is_auto_approved(make_item(usage_mcf=None), threshold=0)
