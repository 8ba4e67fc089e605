"""Resolve extracted bill items to a building and a meter.

Building resolution walks a fixed ladder of match tiers and stops at the first
success. A tier whose key points at more than one building ends resolution with
an ambiguous outcome instead of guessing.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

import structlog

from ..normalization.address import loose_key, normalize_address
from ..normalization.values import normalize_meter
from ..storage.repositories import MeterRepo
from .index import OrgIndex

logger = structlog.get_logger(__name__)

MAX_CANDIDATES = 8


class MatchTier(StrEnum):
    OVERRIDE = "override"
    METER_LABEL = "meter_label"
    ADDRESS = "address"
    ALTERNATE_ADDRESS = "alternate_address"
    LOOSE_ADDRESS = "loose_address"
    ALTERNATE_LOOSE_ADDRESS = "alternate_loose_address"


@dataclass
class BuildingResolution:
    building_id: UUID | None = None
    matched_by: MatchTier | None = None
    meter_id: UUID | None = None  # set when the meter label tier matched
    ambiguous: bool = False
    error: str | None = None
    candidates: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.building_id is not None


@dataclass
class MeterResolution:
    meter_id: UUID | None = None
    created: bool = False
    error: str | None = None
    notes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.meter_id is not None


def _addresses(index: OrgIndex, building_ids) -> list[str]:
    return [index.buildings[b].address or str(b) for b in building_ids][:MAX_CANDIDATES]


def resolve_building(
    index: OrgIndex,
    *,
    address: str | None,
    meter_no: str | None = None,
    utility: str | None = None,
    override_building_id: UUID | None = None,
) -> BuildingResolution:
    """Find the building a bill belongs to.

    Tiers, first success wins: explicit override, meter label, normalized
    address (buildings then alternates), loose key (buildings then
    alternates). No match returns up to eight candidate addresses.
    """
    notes: list[str] = []

    if override_building_id is not None:
        if override_building_id in index.buildings:
            return BuildingResolution(building_id=override_building_id, matched_by=MatchTier.OVERRIDE)
        return BuildingResolution(
            error=f"Building {override_building_id} does not belong to this organisation",
            candidates=index.candidate_addresses(MAX_CANDIDATES),
        )

    label = normalize_meter(meter_no)
    if label:
        meters = index.meters_by_label.get(label, ())
        same_utility = [m for m in meters if utility is None or m.utility == utility]
        pool = same_utility or list(meters)
        building_ids = list(dict.fromkeys(m.building_id for m in pool))
        if len(building_ids) == 1:
            meter_id = same_utility[0].id if len(same_utility) == 1 else None
            return BuildingResolution(
                building_id=building_ids[0],
                matched_by=MatchTier.METER_LABEL,
                meter_id=meter_id,
            )
        if len(building_ids) > 1:
            notes.append(f"meter {label} is on {len(building_ids)} buildings; matching by address")

    norm = normalize_address(address)
    lk = loose_key(address)
    tiers: list[tuple[MatchTier, str | None, Mapping[str, tuple[UUID, ...]]]] = [
        (MatchTier.ADDRESS, norm, index.by_address),
        (MatchTier.ALTERNATE_ADDRESS, norm, index.by_alternate_address),
        (MatchTier.LOOSE_ADDRESS, lk, index.by_loose_key),
        (MatchTier.ALTERNATE_LOOSE_ADDRESS, lk, index.by_alternate_loose_key),
    ]
    for tier, key, table in tiers:
        if not key:
            continue
        hits = table.get(key, ())
        if len(hits) == 1:
            return BuildingResolution(building_id=hits[0], matched_by=tier, notes=notes)
        if len(hits) > 1:
            logger.info("building_match_ambiguous", tier=tier.value, key=key, count=len(hits))
            return BuildingResolution(
                ambiguous=True,
                error=f"Address '{address}' matches {len(hits)} buildings ({tier.value})",
                candidates=_addresses(index, hits),
                notes=notes,
            )

    return BuildingResolution(
        error=f"No building matched address '{address or ''}'",
        candidates=index.candidate_addresses(MAX_CANDIDATES),
        notes=notes,
    )


async def resolve_meter(
    repo: MeterRepo,
    *,
    building_id: UUID,
    utility: str,
    meter_no: str | None,
    provider: str | None = None,
    auto_create: bool = True,
) -> MeterResolution:
    """Find (or create) the meter for a resolved building.

    An empty meter id resolves to the building's single default meter for the
    utility. A provider name that differs from the stored one is refreshed.
    """
    label = normalize_meter(meter_no) or None
    meter = await repo.find(building_id, utility, label)
    if meter is not None:
        if provider and meter.provider != provider:
            await repo.update_provider(meter.id, provider)
        return MeterResolution(meter_id=meter.id)

    if not auto_create:
        return MeterResolution(
            error=f"No {utility} meter '{label or 'default'}' on building {building_id} and auto-create is off"
        )

    meter, created = await repo.get_or_create(building_id, utility, label, provider)
    if created:
        logger.info("meter_created", building_id=str(building_id), utility=utility, label=label)
    notes = [f"created meter {label or 'default'}"] if created else []
    return MeterResolution(meter_id=meter.id, created=created, notes=notes)
