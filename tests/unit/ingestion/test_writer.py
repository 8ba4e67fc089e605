"""Test idempotent bill and usage writes."""
from datetime import date
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError

from bill_ingestion.ingestion.writer import BillWrite, BillWriter, WriteError
from bill_ingestion.normalization.values import UsageUnits
from bill_ingestion.storage.repositories import BillRepo, BuildingRepo, UsageReadingRepo
from tests.factories import make_building, make_meter


@pytest_asyncio.fixture
async def meter(session):
    building = await BuildingRepo(session).create(make_building(uuid4()))
    meter = make_meter(building.id)
    session.add(meter)
    await session.flush()
    return meter


def bill_write(meter, **overrides) -> BillWrite:
    fields = dict(
        building_id=meter.building_id,
        meter_id=meter.id,
        period_start=date(2025, 1, 5),
        period_end=date(2025, 2, 4),
        usage=UsageUnits(usage_mcf=42.0, usage_mmbtu=43.512),
        total_cost=245.67,
        utility_provider="Kansas Gas Service",
    )
    fields.update(overrides)
    return BillWrite(**fields)


class TestBillWriter:
    @pytest.mark.asyncio
    async def test_first_write_creates(self, session, meter):
        result = await BillWriter(session).write(bill_write(meter))

        assert result.created
        assert result.usage_written
        bill = await BillRepo(session).get_by_id(result.bill_id)
        assert bill.total_cost == 245.67
        reading = await UsageReadingRepo(session).get_for_bill(result.bill_id)
        assert reading.usage_mcf == 42.0
        assert reading.usage_mmbtu == 43.512

    @pytest.mark.asyncio
    async def test_rewrite_is_idempotent(self, session, meter):
        writer = BillWriter(session)
        first = await writer.write(bill_write(meter))
        second = await writer.write(bill_write(meter))

        assert second.bill_id == first.bill_id
        assert not second.created
        assert len(await BillRepo(session).list_for_meter(meter.id)) == 1

    @pytest.mark.asyncio
    async def test_corrected_bill_replaces_values(self, session, meter):
        writer = BillWriter(session)
        first = await writer.write(bill_write(meter))
        await writer.write(bill_write(meter, total_cost=250.0, usage=UsageUnits(therms=430.0, usage_mmbtu=43.0)))

        bill = await BillRepo(session).get_by_id(first.bill_id)
        assert bill.total_cost == 250.0
        reading = await UsageReadingRepo(session).get_for_bill(first.bill_id)
        assert reading.therms == 430.0
        assert reading.usage_mcf is None

    @pytest.mark.asyncio
    async def test_no_units_clears_usage(self, session, meter):
        writer = BillWriter(session)
        first = await writer.write(bill_write(meter))
        second = await writer.write(bill_write(meter, usage=UsageUnits()))

        assert not second.usage_written
        assert await UsageReadingRepo(session).get_for_bill(first.bill_id) is None

    @pytest.mark.asyncio
    async def test_reversed_period_rejected(self, session, meter):
        with pytest.raises(WriteError):
            await BillWriter(session).write(
                bill_write(meter, period_start=date(2025, 2, 4), period_end=date(2025, 1, 5))
            )

    @pytest.mark.asyncio
    async def test_usage_failure_removes_new_bill(self, session, meter, monkeypatch):
        async def failing_replace(self, bill_id, **units):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(UsageReadingRepo, "replace", failing_replace)

        with pytest.raises(WriteError, match="usage reading write failed"):
            await BillWriter(session).write(bill_write(meter))
        assert await BillRepo(session).list_for_meter(meter.id) == []

    @pytest.mark.asyncio
    async def test_usage_failure_keeps_existing_bill(self, session, meter, monkeypatch):
        first = await BillWriter(session).write(bill_write(meter))

        async def failing_replace(self, bill_id, **units):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(UsageReadingRepo, "replace", failing_replace)

        with pytest.raises(WriteError):
            await BillWriter(session).write(bill_write(meter, total_cost=1.0))
        assert await BillRepo(session).get_by_id(first.bill_id) is not None
