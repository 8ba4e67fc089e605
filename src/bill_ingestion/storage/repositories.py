"""Async repositories for buildings, meters, bills and usage readings."""

from __future__ import annotations

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bill_ingestion.storage.models import (
    AlternateAddress,
    Bill,
    BillUpload,
    Building,
    Meter,
    UsageReading,
)

logger = structlog.get_logger(__name__)


# ── Building ─────────────────────────────────────────────────────────────────


class BuildingRepo:
    """Reads and registry-link updates for the ``buildings`` table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, building: Building) -> Building:
        self._session.add(building)
        await self._session.flush()
        await self._session.refresh(building)
        return building

    async def get_by_id(self, building_id: UUID) -> Building | None:
        stmt = select(Building).where(Building.id == building_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_org(self, org_id: UUID) -> list[Building]:
        stmt = select(Building).where(Building.org_id == org_id).order_by(Building.created_at, Building.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_alternate_addresses(self, org_id: UUID) -> list[AlternateAddress]:
        stmt = (
            select(AlternateAddress)
            .join(Building, AlternateAddress.building_id == Building.id)
            .where(Building.org_id == org_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add_alternate_address(self, building_id: UUID, address: str) -> AlternateAddress:
        alt = AlternateAddress(building_id=building_id, address=address)
        self._session.add(alt)
        await self._session.flush()
        return alt

    async def link_registry_property(
        self,
        building_id: UUID,
        registry_property_id: str,
        registry_property_name: str | None,
    ) -> None:
        stmt = (
            update(Building)
            .where(Building.id == building_id)
            .values(
                registry_property_id=registry_property_id,
                registry_property_name=registry_property_name,
            )
        )
        await self._session.execute(stmt)
        await self._session.flush()


# ── Meter ────────────────────────────────────────────────────────────────────


class MeterRepo:
    """Meter lookups and race-tolerant creation."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, meter_id: UUID) -> Meter | None:
        stmt = select(Meter).where(Meter.id == meter_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_org(self, org_id: UUID) -> list[Meter]:
        stmt = (
            select(Meter)
            .join(Building, Meter.building_id == Building.id)
            .where(Building.org_id == org_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find(self, building_id: UUID, utility: str, label: str | None) -> Meter | None:
        stmt = select(Meter).where(Meter.building_id == building_id, Meter.utility == utility)
        if label is None:
            stmt = stmt.where(Meter.label.is_(None))
        else:
            stmt = stmt.where(Meter.label == label)
        result = await self._session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        building_id: UUID,
        utility: str,
        label: str | None,
        provider: str | None = None,
    ) -> tuple[Meter, bool]:
        """Return ``(meter, created)`` for the building/utility/label triple.

        A concurrent insert of the same triple surfaces as a unique violation
        inside the savepoint; the existing row is re-selected instead.
        """
        existing = await self.find(building_id, utility, label)
        if existing is not None:
            return existing, False

        meter = Meter(building_id=building_id, utility=utility, label=label, provider=provider)
        try:
            async with self._session.begin_nested():
                self._session.add(meter)
                await self._session.flush()
        except IntegrityError:
            logger.info("meter_create_race", building_id=str(building_id), utility=utility, label=label)
            existing = await self.find(building_id, utility, label)
            if existing is None:
                raise
            return existing, False
        return meter, True

    async def update_provider(self, meter_id: UUID, provider: str) -> None:
        stmt = update(Meter).where(Meter.id == meter_id).values(provider=provider)
        await self._session.execute(stmt)
        await self._session.flush()

    async def set_registry_meter_id(self, meter_id: UUID, registry_meter_id: str) -> None:
        stmt = update(Meter).where(Meter.id == meter_id).values(registry_meter_id=registry_meter_id)
        await self._session.execute(stmt)
        await self._session.flush()


# ── Bill ─────────────────────────────────────────────────────────────────────


class BillRepo:
    """Bills keyed by ``(meter_id, period_start, period_end)``."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, bill_id: UUID) -> Bill | None:
        stmt = select(Bill).where(Bill.id == bill_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_natural_key(self, meter_id: UUID, period_start: date, period_end: date) -> Bill | None:
        stmt = select(Bill).where(
            Bill.meter_id == meter_id,
            Bill.period_start == period_start,
            Bill.period_end == period_end,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert(self, bill: Bill) -> Bill:
        """Insert inside a savepoint; ``IntegrityError`` propagates on a key clash."""
        async with self._session.begin_nested():
            self._session.add(bill)
            await self._session.flush()
        return bill

    async def update_costs(self, bill_id: UUID, **values) -> None:
        stmt = update(Bill).where(Bill.id == bill_id).values(**values)
        await self._session.execute(stmt)
        await self._session.flush()

    async def delete(self, bill_id: UUID) -> None:
        await self._session.execute(delete(UsageReading).where(UsageReading.bill_id == bill_id))
        await self._session.execute(delete(Bill).where(Bill.id == bill_id))
        await self._session.flush()

    async def list_for_meter(self, meter_id: UUID) -> list[Bill]:
        stmt = select(Bill).where(Bill.meter_id == meter_id).order_by(Bill.period_start)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


# ── Usage reading ────────────────────────────────────────────────────────────


class UsageReadingRepo:
    """One usage row per bill, always replaced wholesale."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_for_bill(self, bill_id: UUID) -> UsageReading | None:
        stmt = select(UsageReading).where(UsageReading.bill_id == bill_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_for_bill(self, bill_id: UUID) -> None:
        await self._session.execute(delete(UsageReading).where(UsageReading.bill_id == bill_id))
        await self._session.flush()

    async def replace(self, bill_id: UUID, **units) -> UsageReading:
        """Delete any reading for *bill_id*, then insert a fresh one."""
        async with self._session.begin_nested():
            await self._session.execute(delete(UsageReading).where(UsageReading.bill_id == bill_id))
            reading = UsageReading(bill_id=bill_id, **units)
            self._session.add(reading)
            await self._session.flush()
        return reading


# ── Bill upload ──────────────────────────────────────────────────────────────


class BillUploadRepo:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, upload: BillUpload) -> BillUpload:
        self._session.add(upload)
        await self._session.flush()
        await self._session.refresh(upload)
        return upload

    async def get_by_id(self, upload_id: UUID) -> BillUpload | None:
        stmt = select(BillUpload).where(BillUpload.id == upload_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_uploads(self, *, offset: int = 0, limit: int = 50) -> list[BillUpload]:
        stmt = select(BillUpload).order_by(BillUpload.created_at.desc()).offset(offset).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
