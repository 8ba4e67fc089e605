"""Test batch ingestion request parsing."""
from uuid import uuid4
import pytest
from pydantic import ValidationError
from bill_ingestion.models.ingest import IngestItem, IngestRequest, IngestItemResult
from bill_ingestion.models.items import Utility


class TestIngestItem:
    def test_aliases(self):
        item = IngestItem.model_validate({
            "meterNumber": "ABC123",
            "address": "1 Main St",
            "kwh": 100,
            "ccf": "420",
            "usage_therms": 12,
            "heat_content_mmbtu_per_mcf": 1.02,
            "total": "$1,234.50",
        })
        assert item.meter_no == "ABC123"
        assert item.service_address == "1 Main St"
        assert item.usage_kwh == 100
        assert item.usage_ccf == 420.0
        assert item.therms == 12
        assert item.heat_content == 1.02
        assert item.total_cost == 1234.5

    def test_snake_case_names(self):
        item = IngestItem(meter_no="X", period_start="2025-01-01", usage_mcf=3.5)
        assert item.usage_mcf == 3.5

    def test_blank_building_id(self):
        assert IngestItem.model_validate({"buildingId": " "}).building_id is None

    def test_unparseable_number_is_none(self):
        assert IngestItem.model_validate({"total_cost": "n/a"}).total_cost is None


class TestIngestRequest:
    def test_camel_case(self):
        org = uuid4()
        req = IngestRequest.model_validate({
            "orgId": str(org),
            "utility": "gas",
            "autoCreateMeter": False,
            "items": [{"meter": "A1"}],
        })
        assert req.org_id == org
        assert req.utility == Utility.GAS
        assert req.auto_create_meter is False
        assert req.items[0].meter_no == "A1"

    def test_unknown_utility(self):
        with pytest.raises(ValidationError):
            IngestRequest.model_validate({"orgId": str(uuid4()), "utility": "water"})


class TestIngestItemResult:
    def test_ok(self):
        assert IngestItemResult(index=0).ok
        assert not IngestItemResult(index=0, error="boom").ok
