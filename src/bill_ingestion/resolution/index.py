"""Read-only per-organisation lookup tables used by the entity resolver.

An :class:`OrgIndex` is built once per ingestion batch and passed explicitly to
the resolver. It never changes after construction; meters created during the
batch are looked up through the store, not through the index.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..normalization.address import loose_key, normalize_address
from ..normalization.values import normalize_meter
from ..storage.repositories import BuildingRepo, MeterRepo


@dataclass(frozen=True)
class BuildingRef:
    id: UUID
    name: str | None
    address: str | None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    registry_property_id: str | None = None


@dataclass(frozen=True)
class MeterRef:
    id: UUID
    building_id: UUID
    utility: str
    label: str | None
    provider: str | None = None


def _freeze(table: dict[str, list[UUID]]) -> Mapping[str, tuple[UUID, ...]]:
    return MappingProxyType({k: tuple(dict.fromkeys(v)) for k, v in table.items()})


@dataclass(frozen=True)
class OrgIndex:
    org_id: UUID
    buildings: Mapping[UUID, BuildingRef]
    by_address: Mapping[str, tuple[UUID, ...]]
    by_alternate_address: Mapping[str, tuple[UUID, ...]]
    by_loose_key: Mapping[str, tuple[UUID, ...]]
    by_alternate_loose_key: Mapping[str, tuple[UUID, ...]]
    meters_by_label: Mapping[str, tuple[MeterRef, ...]]

    @classmethod
    def build(
        cls,
        org_id: UUID,
        buildings: Iterable[BuildingRef],
        meters: Iterable[MeterRef] = (),
        alternates: Iterable[tuple[UUID, str]] = (),
    ) -> OrgIndex:
        """Index buildings by normalized and loose address, meters by label.

        Keys that map to several buildings are kept as-is; the resolver
        reports them as ambiguous.
        """
        by_id: dict[UUID, BuildingRef] = {}
        by_addr: dict[str, list[UUID]] = {}
        by_loose: dict[str, list[UUID]] = {}
        for b in buildings:
            by_id[b.id] = b
            norm = normalize_address(b.address)
            if norm:
                by_addr.setdefault(norm, []).append(b.id)
            lk = loose_key(b.address)
            if lk:
                by_loose.setdefault(lk, []).append(b.id)

        alt_addr: dict[str, list[UUID]] = {}
        alt_loose: dict[str, list[UUID]] = {}
        for building_id, address in alternates:
            if building_id not in by_id:
                continue
            norm = normalize_address(address)
            if norm:
                alt_addr.setdefault(norm, []).append(building_id)
            lk = loose_key(address)
            if lk:
                alt_loose.setdefault(lk, []).append(building_id)

        labels: dict[str, list[MeterRef]] = {}
        for m in meters:
            key = normalize_meter(m.label)
            if key and m.building_id in by_id:
                labels.setdefault(key, []).append(m)

        return cls(
            org_id=org_id,
            buildings=MappingProxyType(by_id),
            by_address=_freeze(by_addr),
            by_alternate_address=_freeze(alt_addr),
            by_loose_key=_freeze(by_loose),
            by_alternate_loose_key=_freeze(alt_loose),
            meters_by_label=MappingProxyType({k: tuple(v) for k, v in labels.items()}),
        )

    def candidate_addresses(self, limit: int = 8) -> list[str]:
        """Up to *limit* building addresses to offer for manual correction."""
        out = [b.address for b in self.buildings.values() if b.address]
        return out[:limit]


async def load_org_index(session: AsyncSession, org_id: UUID) -> OrgIndex:
    """Read the organisation's buildings, meters and alternates into an index."""
    building_repo = BuildingRepo(session)
    buildings = await building_repo.list_for_org(org_id)
    alternates = await building_repo.list_alternate_addresses(org_id)
    meters = await MeterRepo(session).list_for_org(org_id)
    return OrgIndex.build(
        org_id,
        [
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
        ],
        [
            MeterRef(id=m.id, building_id=m.building_id, utility=m.utility, label=m.label, provider=m.provider)
            for m in meters
        ],
        [(a.building_id, a.address) for a in alternates],
    )
