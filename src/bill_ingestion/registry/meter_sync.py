"""Decide, per local meter, whether to link an existing registry meter or create one."""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from .client import METER_TYPES
from .xml import RegistryMeter


class SyncDecision(StrEnum):
    LINK = "link"
    CREATE = "create"


@dataclass
class SyncAction:
    meter_id: UUID
    building_id: UUID
    building_name: str | None
    property_id: str
    utility: str
    meter_number: str | None
    provider: str | None
    decision: SyncDecision
    reason: str
    registry_meter_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _norm(value: str | None) -> str:
    return " ".join((value or "").strip().lower().split())


def choose_match(
    registry_meters: list[RegistryMeter],
    *,
    utility: str,
    meter_number: str | None,
    provider: str | None,
) -> tuple[SyncDecision, str | None, str]:
    """Return ``(decision, registry_meter_id, reason)`` for one local meter.

    An equal meter number links. Otherwise the first registry meter of the
    same type whose alias or description mentions the provider links. With
    no provider on the local meter, type alone is enough.
    """
    number = _norm(meter_number)
    if number:
        for m in registry_meters:
            if _norm(m.number) == number:
                return SyncDecision.LINK, m.id, "matched by meter number"

    local_type = _norm(METER_TYPES.get(utility, utility))
    local_provider = _norm(provider)
    for m in registry_meters:
        if _norm(m.type or m.fuel_type) != local_type:
            continue
        label = _norm(m.alias or m.description)
        if not local_provider or local_provider in label:
            return SyncDecision.LINK, m.id, "matched by type + alias/provider"

    return SyncDecision.CREATE, None, "no match found on property"
