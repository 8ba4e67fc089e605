"""Match local buildings to registry properties by address key, then by name."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from ..normalization.address import address_key, normalize_address
from ..resolution.index import BuildingRef
from ..resolution.names import name_similarity
from .xml import RegistryProperty

LOW_NAME_SIMILARITY = 0.35
DISAMBIGUATION_THRESHOLD = 0.55
DISAMBIGUATION_MARGIN = 0.15
NAME_FALLBACK_THRESHOLD = 0.6
AUTO_COMMIT_NAME_SCORE = 0.99
MAX_CANDIDATES = 5


class LinkMethod(StrEnum):
    ADDRESS = "address"
    NAME = "name"


@dataclass
class LinkResult:
    building_id: object
    building_name: str | None
    key: str
    matched: bool = False
    method: LinkMethod | None = None
    score: float | None = None
    property_id: str | None = None
    property_name: str | None = None
    reason: str = ""
    candidates: list[dict] = field(default_factory=list)

    @property
    def auto_commit(self) -> bool:
        """Address matches, and near-exact name matches, are safe to store unreviewed."""
        if not self.matched or not self.property_id:
            return False
        if self.method == LinkMethod.ADDRESS:
            return True
        return self.score is not None and self.score >= AUTO_COMMIT_NAME_SCORE


def property_key(prop: RegistryProperty) -> str:
    return address_key(prop.address1, prop.city, prop.state, prop.postal_code)


def building_key(building: BuildingRef) -> str:
    if not normalize_address(building.address):
        return ""
    return address_key(building.address, building.city, building.state, building.postal_code)


def _candidate(prop: RegistryProperty) -> dict:
    return {"property_id": prop.property_id, "name": prop.name}


def _norm(value: str | None) -> str:
    return " ".join((value or "").upper().split())


def _matched(building: BuildingRef, key: str, prop: RegistryProperty, method: LinkMethod,
             score: float, reason: str) -> LinkResult:
    return LinkResult(
        building_id=building.id,
        building_name=building.name,
        key=key,
        matched=True,
        method=method,
        score=round(score, 4),
        property_id=prop.property_id,
        property_name=prop.name,
        reason=reason,
        candidates=[_candidate(prop)],
    )


def match_building(
    building: BuildingRef,
    by_key: dict[str, list[RegistryProperty]],
    properties: list[RegistryProperty],
) -> LinkResult:
    key = building_key(building)
    if not key:
        return LinkResult(building.id, building.name, key, reason="No usable address fields present")

    hits = by_key.get(key, [])
    if len(hits) == 1:
        score = name_similarity(building.name, hits[0].name)
        reason = f"address-match low-name-sim={score:.2f}" if score < LOW_NAME_SIMILARITY else "address-match"
        return _matched(building, key, hits[0], LinkMethod.ADDRESS, score, reason)

    if len(hits) > 1:
        scored = sorted(
            ((name_similarity(building.name, h.name), h) for h in hits),
            key=lambda pair: pair[0],
            reverse=True,
        )
        best_score, best = scored[0]
        runner_up = scored[1][0]
        if best_score >= DISAMBIGUATION_THRESHOLD and best_score - runner_up >= DISAMBIGUATION_MARGIN:
            return _matched(
                building, key, best, LinkMethod.NAME, best_score,
                f"address-ambiguous, name-fallback score={best_score:.2f}",
            )
        return LinkResult(
            building.id,
            building.name,
            key,
            reason=f"Ambiguous: {len(hits)} registry properties share this key (name fallback inconclusive)",
            candidates=[_candidate(h) for h in hits[:MAX_CANDIDATES]],
        )

    city, state = _norm(building.city), _norm(building.state)
    pool = [
        p for p in properties
        if (not city or _norm(p.city) == city) and (not state or _norm(p.state) == state)
    ]
    scored = sorted(
        ((name_similarity(building.name, p.name), p) for p in (pool or properties)),
        key=lambda pair: pair[0],
        reverse=True,
    )
    if scored and scored[0][0] >= NAME_FALLBACK_THRESHOLD:
        best_score, best = scored[0]
        scope = " (scoped by city/state)" if pool else ""
        return _matched(
            building, key, best, LinkMethod.NAME, best_score,
            f"name-fallback score={best_score:.2f}{scope}",
        )
    return LinkResult(
        building.id,
        building.name,
        key,
        reason="No registry property found for this key (name fallback inconclusive)",
        candidates=[_candidate(p) for _, p in scored[:MAX_CANDIDATES]],
    )


def link_buildings(buildings: Iterable[BuildingRef], properties: list[RegistryProperty]) -> list[LinkResult]:
    """Match every building without a registry link; already-linked ones are skipped."""
    by_key: dict[str, list[RegistryProperty]] = {}
    for prop in properties:
        by_key.setdefault(property_key(prop), []).append(prop)
    return [
        match_building(b, by_key, properties)
        for b in buildings
        if not b.registry_property_id
    ]
