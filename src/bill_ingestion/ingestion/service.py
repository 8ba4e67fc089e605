"""Batch ingestion: resolve every approved item and write it, item by item."""
from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..models.ingest import (
    IngestItem,
    IngestItemResult,
    IngestRequest,
    IngestResponse,
    IngestSummary,
)
from ..normalization.dates import to_iso_date
from ..normalization.values import derive_usage
from ..resolution.index import OrgIndex, load_org_index
from ..resolution.resolver import resolve_building, resolve_meter
from ..storage.repositories import MeterRepo
from .writer import BillWrite, BillWriter, WriteError

logger = structlog.get_logger(__name__)


class ItemRejected(Exception):
    """An item failed validation or resolution; carries manual-fix candidates."""

    def __init__(self, message: str, candidates: list[str] | None = None, notes: list[str] | None = None):
        super().__init__(message)
        self.candidates = candidates or []
        self.notes = notes or []


class BatchIngestionService:
    """Store a batch of approved bill items for one organisation and utility.

    The organisation index is loaded once per batch. Each item runs in its own
    savepoint, so a failure rolls back that item alone and the batch carries
    on; the caller commits the session.
    """

    def __init__(self, session: AsyncSession, settings: Settings):
        self._session = session
        self._settings = settings
        self._meters = MeterRepo(session)
        self._writer = BillWriter(session)

    async def ingest(self, request: IngestRequest) -> IngestResponse:
        index = await load_org_index(self._session, request.org_id)
        auto_create = (
            request.auto_create_meter
            if request.auto_create_meter is not None
            else self._settings.auto_create_meter
        )
        logger.info(
            "ingest_batch_start",
            org_id=str(request.org_id),
            utility=request.utility.value,
            items=len(request.items),
            buildings=len(index.buildings),
        )

        summary = IngestSummary(items_received=len(request.items))
        results: list[IngestItemResult] = []
        for i, item in enumerate(request.items):
            try:
                async with self._session.begin_nested():
                    result = await self._ingest_item(i, item, request, index, auto_create)
            except ItemRejected as exc:
                result = IngestItemResult(index=i, error=str(exc), candidates=exc.candidates, notes=exc.notes)
            except (WriteError, SQLAlchemyError) as exc:
                logger.error("ingest_item_failed", index=i, error=str(exc))
                result = IngestItemResult(index=i, error=str(exc))

            if result.ok:
                summary.bills_created += int(result.created_bill)
                summary.bills_updated += int(not result.created_bill)
                summary.usage_rows_written += int(result.usage_written)
            else:
                summary.failed += 1
            results.append(result)

        logger.info("ingest_batch_complete", org_id=str(request.org_id), **summary.model_dump())
        return IngestResponse(ok=summary.failed == 0, summary=summary, results=results)

    async def _ingest_item(
        self,
        i: int,
        item: IngestItem,
        request: IngestRequest,
        index: OrgIndex,
        auto_create: bool,
    ) -> IngestItemResult:
        utility = request.utility.value
        notes: list[str] = []
        if item.match_via:
            notes.append(f"match_via={item.match_via}")

        building = resolve_building(
            index,
            address=item.service_address,
            meter_no=item.meter_no,
            utility=utility,
            override_building_id=item.building_id,
        )
        notes.extend(building.notes)
        if not building.ok:
            raise ItemRejected(building.error or "Building not resolved", building.candidates, notes)

        start = to_iso_date(item.period_start)
        end = to_iso_date(item.period_end)
        if start is None or end is None:
            raise ItemRejected(
                f"Invalid billing period {item.period_start!r} - {item.period_end!r}", notes=notes
            )
        if end < start:
            raise ItemRejected(f"period_end {end} is before period_start {start}", notes=notes)

        if building.meter_id is not None:
            meter_id = building.meter_id
            if item.utility_provider:
                existing = await self._meters.get_by_id(meter_id)
                if existing is not None and existing.provider != item.utility_provider:
                    await self._meters.update_provider(meter_id, item.utility_provider)
                    notes.append(f"provider updated to {item.utility_provider}")
        else:
            meter = await resolve_meter(
                self._meters,
                building_id=building.building_id,
                utility=utility,
                meter_no=item.meter_no,
                provider=item.utility_provider,
                auto_create=auto_create,
            )
            notes.extend(meter.notes)
            if not meter.ok:
                raise ItemRejected(meter.error or "Meter not resolved", notes=notes)
            meter_id = meter.meter_id

        usage = derive_usage(
            request.utility,
            kwh=item.usage_kwh,
            mcf=item.usage_mcf,
            mmbtu=item.usage_mmbtu,
            ccf=item.usage_ccf,
            therms=item.therms,
            usage=item.usage,
            heat_content=item.heat_content or self._settings.default_heat_content,
        )
        total_cost = item.total_cost if item.total_cost is not None else item.section_total_cost

        written = await self._writer.write(BillWrite(
            building_id=building.building_id,
            meter_id=meter_id,
            period_start=start,
            period_end=end,
            usage=usage,
            total_cost=total_cost,
            demand_cost=item.demand_cost,
            utility_provider=item.utility_provider,
            bill_upload_id=request.bill_upload_id,
        ))
        return IngestItemResult(
            index=i,
            building_id=building.building_id,
            meter_id=meter_id,
            bill_id=written.bill_id,
            matched_by=building.matched_by.value if building.matched_by else None,
            created_bill=written.created,
            usage_written=written.usage_written,
            notes=notes,
        )
