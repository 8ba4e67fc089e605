"""Batch ingestion request and response models.

Request fields accept the snake_case names used internally as well as the
camelCase and unit-alias spellings older clients send (``meterNumber``,
``kwh``, ``ccf``, ``usage_therms`` ...).
"""

from __future__ import annotations

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..normalization.values import parse_amount
from .items import Utility

_NUMERIC_FIELDS = (
    "usage_kwh",
    "usage_mcf",
    "usage_mmbtu",
    "usage_ccf",
    "therms",
    "usage",
    "heat_content",
    "total_cost",
    "section_total_cost",
    "demand_cost",
)


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class IngestItem(BaseModel):
    """One approved bill to store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    building_id: UUID | None = Field(default=None, validation_alias=_alias("building_id", "buildingId"))
    service_address: str | None = Field(default=None, validation_alias=_alias("service_address", "address"))
    meter_no: str | None = Field(default=None, validation_alias=_alias("meter_no", "meterNumber", "meter"))
    period_start: str | None = Field(default=None, validation_alias=_alias("period_start", "start"))
    period_end: str | None = Field(default=None, validation_alias=_alias("period_end", "end"))
    usage_kwh: float | None = Field(default=None, validation_alias=_alias("usage_kwh", "kwh"))
    usage_mcf: float | None = Field(default=None, validation_alias=_alias("usage_mcf", "mcf"))
    usage_mmbtu: float | None = Field(default=None, validation_alias=_alias("usage_mmbtu", "mmbtu"))
    usage_ccf: float | None = Field(default=None, validation_alias=_alias("usage_ccf", "ccf"))
    therms: float | None = Field(default=None, validation_alias=_alias("therms", "usage_therms"))
    usage: float | None = Field(default=None, validation_alias=_alias("usage", "usage_total", "usage_value"))
    heat_content: float | None = Field(
        default=None, validation_alias=_alias("heat_content_mmbtu_per_mcf", "heat_content")
    )
    total_cost: float | None = Field(default=None, validation_alias=_alias("total_cost", "total"))
    section_total_cost: float | None = Field(
        default=None, validation_alias=_alias("section_total_cost", "sectionTotal")
    )
    demand_cost: float | None = Field(default=None, validation_alias=_alias("demand_cost", "demand"))
    utility_provider: str | None = Field(default=None, validation_alias=_alias("utility_provider", "provider"))
    match_via: str | None = Field(default=None, validation_alias=_alias("match_via", "matchVia"))

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def _coerce_number(cls, value):
        if value is None or isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            return parse_amount(value)
        return value

    @field_validator("building_id", mode="before")
    @classmethod
    def _blank_building(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class IngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    org_id: UUID = Field(validation_alias=_alias("org_id", "orgId"))
    utility: Utility
    bill_upload_id: UUID | None = Field(default=None, validation_alias=_alias("bill_upload_id", "billUploadId"))
    auto_create_meter: bool | None = Field(
        default=None, validation_alias=_alias("auto_create_meter", "autoCreateMeter")
    )
    items: list[IngestItem] = Field(default_factory=list)


class IngestItemResult(BaseModel):
    index: int
    building_id: UUID | None = None
    meter_id: UUID | None = None
    bill_id: UUID | None = None
    matched_by: str | None = None
    created_bill: bool = False
    usage_written: bool = False
    notes: list[str] = Field(default_factory=list)
    error: str | None = None
    candidates: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class IngestSummary(BaseModel):
    items_received: int = 0
    bills_created: int = 0
    bills_updated: int = 0
    usage_rows_written: int = 0
    failed: int = 0


class IngestResponse(BaseModel):
    ok: bool
    summary: IngestSummary
    results: list[IngestItemResult]
