"""Idempotent bill + usage persistence keyed by ``(meter, period_start, period_end)``."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..normalization.values import UsageUnits
from ..storage.models import Bill
from ..storage.repositories import BillRepo, UsageReadingRepo

logger = structlog.get_logger(__name__)


class WriteError(Exception):
    """A bill or its usage reading could not be stored."""


@dataclass
class BillWrite:
    building_id: UUID
    meter_id: UUID
    period_start: date
    period_end: date
    usage: UsageUnits
    total_cost: float | None = None
    demand_cost: float | None = None
    utility_provider: str | None = None
    bill_upload_id: UUID | None = None


@dataclass
class WriteResult:
    bill_id: UUID
    created: bool
    usage_written: bool


class BillWriter:
    """Upsert a bill by natural key and replace its usage reading.

    Re-ingesting the same bill updates it in place; the usage row is always
    deleted and re-inserted so unit fields missing from the new submission
    are cleared rather than left stale.
    """

    def __init__(self, session: AsyncSession):
        self._bills = BillRepo(session)
        self._usage = UsageReadingRepo(session)

    async def write(self, data: BillWrite) -> WriteResult:
        if data.period_end < data.period_start:
            raise WriteError(f"period_end {data.period_end} is before period_start {data.period_start}")

        existing = await self._bills.find_by_natural_key(data.meter_id, data.period_start, data.period_end)
        created = False
        if existing is not None:
            bill_id = existing.id
            await self._update(bill_id, data)
        else:
            bill = Bill(
                building_id=data.building_id,
                meter_id=data.meter_id,
                period_start=data.period_start,
                period_end=data.period_end,
                total_cost=data.total_cost,
                demand_cost=data.demand_cost,
                utility_provider=data.utility_provider,
                bill_upload_id=data.bill_upload_id,
            )
            try:
                await self._bills.insert(bill)
                bill_id = bill.id
                created = True
            except IntegrityError as exc:
                # Lost a race for the same natural key; take the winner's row.
                existing = await self._bills.find_by_natural_key(data.meter_id, data.period_start, data.period_end)
                if existing is None:
                    raise WriteError(f"bill insert failed: {exc.orig}") from exc
                logger.info("bill_insert_race", bill_id=str(existing.id), meter_id=str(data.meter_id))
                bill_id = existing.id
                await self._update(bill_id, data)

        usage_written = await self._write_usage(bill_id, data.usage, compensate=created)
        logger.info(
            "bill_written",
            bill_id=str(bill_id),
            meter_id=str(data.meter_id),
            period_start=data.period_start.isoformat(),
            period_end=data.period_end.isoformat(),
            created=created,
            usage_written=usage_written,
        )
        return WriteResult(bill_id=bill_id, created=created, usage_written=usage_written)

    async def _update(self, bill_id: UUID, data: BillWrite) -> None:
        await self._bills.update_costs(
            bill_id,
            building_id=data.building_id,
            total_cost=data.total_cost,
            demand_cost=data.demand_cost,
            utility_provider=data.utility_provider,
            bill_upload_id=data.bill_upload_id,
        )

    async def _write_usage(self, bill_id: UUID, usage: UsageUnits, *, compensate: bool) -> bool:
        try:
            if not usage.any_present():
                await self._usage.delete_for_bill(bill_id)
                return False
            await self._usage.replace(
                bill_id,
                usage_kwh=usage.usage_kwh,
                usage_mcf=usage.usage_mcf,
                usage_mmbtu=usage.usage_mmbtu,
                therms=usage.therms,
            )
            return True
        except SQLAlchemyError as exc:
            logger.error("usage_write_failed", bill_id=str(bill_id), error=str(exc), compensate=compensate)
            if compensate:
                await self._bills.delete(bill_id)
            raise WriteError(f"usage reading write failed: {exc}") from exc
