"""Bill line-item models shared by extraction, merging and ingestion."""

from __future__ import annotations

import json
from enum import StrEnum

from pydantic import BaseModel, Field


class Utility(StrEnum):
    ELECTRIC = "electric"
    GAS = "gas"


class Vendor(StrEnum):
    EVERGY = "evergy"
    KGS = "kgs"
    WOODRIVER = "woodriver"
    UNKNOWN = "unknown"

    @property
    def utility(self) -> Utility:
        return Utility.ELECTRIC if self is Vendor.EVERGY else Utility.GAS

    @property
    def provider_name(self) -> str | None:
        return VENDOR_PROVIDER_NAMES.get(self)


VENDOR_PROVIDER_NAMES: dict[Vendor, str] = {
    Vendor.EVERGY: "Evergy",
    Vendor.KGS: "Kansas Gas Service",
    Vendor.WOODRIVER: "WoodRiver Energy",
}

# Fields counted by the completeness score, in merge order.
ITEM_FIELDS = (
    "meter_no",
    "service_address",
    "period_start",
    "period_end",
    "usage_kwh",
    "usage_mcf",
    "therms",
    "usage_mmbtu",
    "total_cost",
    "section_total_cost",
    "demand_cost",
)

USAGE_FIELDS = ("usage_kwh", "usage_mcf", "usage_mmbtu", "therms")
COST_FIELDS = ("total_cost", "section_total_cost")


def is_present(value) -> bool:
    """A field counts as present when it is not None and not blank text."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


class ExtractedItem(BaseModel):
    """One candidate billing record pulled out of a document."""

    vendor: Vendor = Vendor.UNKNOWN
    source_file: str | None = None
    service_address: str | None = None
    meter_no: str | None = None
    period_start: str | None = None
    period_end: str | None = None
    usage_kwh: float | None = None
    usage_mcf: float | None = None
    usage_mmbtu: float | None = None
    therms: float | None = None
    total_cost: float | None = None
    section_total_cost: float | None = None
    demand_cost: float | None = None
    hints: list[str] = Field(default_factory=list)

    def canonical_key(self) -> str:
        """Deterministic serialisation of the bill fields, used for tie-breaks."""
        payload = {name: getattr(self, name) for name in ITEM_FIELDS}
        payload["vendor"] = self.vendor.value
        return json.dumps(payload, sort_keys=True, default=str)


class MergedItem(ExtractedItem):
    """An item after same-key merging and confidence scoring."""

    merged_from: int = 1
    confidence: int = Field(default=0, ge=0, le=10)
    auto_approved: bool = False
