"""Link an organisation's buildings and meters to the external property registry."""
from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.registry import (
    BuildingLink,
    LinkBuildingsResponse,
    MeterSyncAction,
    PropertyCandidate,
    SyncMetersResponse,
)
from ..resolution.index import BuildingRef
from ..storage.repositories import BuildingRepo, MeterRepo
from .client import RegistryClient, RegistryError
from .matching import LinkResult, link_buildings
from .meter_sync import SyncAction, SyncDecision, choose_match
from .xml import RegistryMeter

logger = structlog.get_logger(__name__)


def _mode(dry_run: bool) -> str:
    return "dry-run" if dry_run else "live"


def _to_link(result: LinkResult, committed: bool = False) -> BuildingLink:
    return BuildingLink(
        building_id=result.building_id,
        building_name=result.building_name,
        key=result.key,
        matched=result.matched,
        method=result.method.value if result.method else None,
        score=result.score,
        property_id=result.property_id,
        property_name=result.property_name,
        reason=result.reason,
        candidates=[PropertyCandidate(**c) for c in result.candidates],
        committed=committed,
    )


class RegistrySyncService:
    """Building linking and meter sync against the registry.

    In dry-run mode decisions are computed and returned but nothing is
    written locally or remotely. The caller commits the session.
    """

    def __init__(self, session: AsyncSession, client: RegistryClient):
        self._client = client
        self._buildings = BuildingRepo(session)
        self._meters = MeterRepo(session)

    async def link_buildings(self, org_id: UUID, *, dry_run: bool = False) -> LinkBuildingsResponse:
        buildings = await self._buildings.list_for_org(org_id)
        refs = [
            BuildingRef(
                id=b.id,
                name=b.name,
                address=b.address,
                city=b.city,
                state=b.state,
                postal_code=b.postal_code,
                registry_property_id=b.registry_property_id,
            )
            for b in buildings
        ]
        properties = await self._client.list_properties()
        results = link_buildings(refs, properties)

        response = LinkBuildingsResponse(
            mode=_mode(dry_run),
            properties=len(properties),
            considered=len(results),
            committed=0,
        )
        for result in results:
            if not result.matched:
                response.unmatched.append(_to_link(result))
                continue
            if not result.auto_commit:
                response.needs_review.append(_to_link(result))
                continue
            if not dry_run:
                await self._buildings.link_registry_property(
                    result.building_id, result.property_id, result.property_name
                )
                response.committed += 1
            response.auto_commit.append(_to_link(result, committed=not dry_run))

        logger.info(
            "registry_buildings_linked",
            org_id=str(org_id),
            mode=response.mode,
            considered=response.considered,
            auto_commit=len(response.auto_commit),
            needs_review=len(response.needs_review),
            unmatched=len(response.unmatched),
            committed=response.committed,
        )
        return response

    async def sync_meters(self, org_id: UUID, *, dry_run: bool = False) -> SyncMetersResponse:
        buildings = {
            b.id: b for b in await self._buildings.list_for_org(org_id) if b.registry_property_id
        }
        meters = [
            m for m in await self._meters.list_for_org(org_id)
            if m.building_id in buildings and not m.registry_meter_id
        ]

        remote: dict[str, list[RegistryMeter] | RegistryError] = {}
        actions: list[SyncAction] = []
        for meter in meters:
            building = buildings[meter.building_id]
            property_id = building.registry_property_id
            if property_id not in remote:
                try:
                    remote[property_id] = await self._client.list_meters(property_id)
                except RegistryError as exc:
                    remote[property_id] = exc

            listed = remote[property_id]
            action = SyncAction(
                meter_id=meter.id,
                building_id=building.id,
                building_name=building.name,
                property_id=property_id,
                utility=meter.utility,
                meter_number=meter.label,
                provider=meter.provider,
                decision=SyncDecision.CREATE,
                reason="",
            )
            if isinstance(listed, RegistryError):
                action.reason = "registry meter list unavailable"
                action.error = str(listed)
            else:
                action.decision, action.registry_meter_id, action.reason = choose_match(
                    listed, utility=meter.utility, meter_number=meter.label, provider=meter.provider
                )
            actions.append(action)

        if not dry_run:
            for action in actions:
                if action.ok:
                    await self._apply(action)

        response = SyncMetersResponse(
            mode=_mode(dry_run),
            count=len(actions),
            actions=[MeterSyncAction(**{**vars(a), "decision": a.decision.value}) for a in actions],
        )
        if not dry_run:
            response.linked = sum(1 for a in actions if a.ok and a.decision == SyncDecision.LINK)
            response.created = sum(1 for a in actions if a.ok and a.decision == SyncDecision.CREATE)
        response.failed = sum(1 for a in actions if not a.ok)
        response.ok = response.failed == 0

        logger.info(
            "registry_meters_synced",
            org_id=str(org_id),
            mode=response.mode,
            count=response.count,
            linked=response.linked,
            created=response.created,
            failed=response.failed,
        )
        return response

    async def _apply(self, action: SyncAction) -> None:
        try:
            if action.decision == SyncDecision.CREATE:
                action.registry_meter_id = await self._client.create_meter(
                    action.property_id,
                    action.utility,
                    name=action.meter_number or f"{action.building_name or action.property_id} {action.utility}",
                )
        except RegistryError as exc:
            logger.warning("registry_meter_sync_failed", meter_id=str(action.meter_id), error=str(exc))
            action.error = str(exc)
            return
        await self._meters.set_registry_meter_id(action.meter_id, action.registry_meter_id)
