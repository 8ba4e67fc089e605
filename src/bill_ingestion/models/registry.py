"""Request and response models for registry linking and meter sync."""

from __future__ import annotations

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RegistryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    org_id: UUID = Field(validation_alias=AliasChoices("org_id", "orgId"))
    dry_run: bool = Field(default=False, validation_alias=AliasChoices("dry_run", "dryRun", "dry"))


class PropertyCandidate(BaseModel):
    property_id: str
    name: str | None = None


class BuildingLink(BaseModel):
    building_id: UUID
    building_name: str | None = None
    key: str
    matched: bool
    method: str | None = None
    score: float | None = None
    property_id: str | None = None
    property_name: str | None = None
    reason: str = ""
    candidates: list[PropertyCandidate] = Field(default_factory=list)
    committed: bool = False


class LinkBuildingsResponse(BaseModel):
    ok: bool = True
    mode: str
    properties: int
    considered: int
    committed: int
    auto_commit: list[BuildingLink] = Field(default_factory=list)
    needs_review: list[BuildingLink] = Field(default_factory=list)
    unmatched: list[BuildingLink] = Field(default_factory=list)


class MeterSyncAction(BaseModel):
    meter_id: UUID
    building_id: UUID
    building_name: str | None = None
    property_id: str
    utility: str
    meter_number: str | None = None
    provider: str | None = None
    decision: str
    reason: str
    registry_meter_id: str | None = None
    error: str | None = None


class SyncMetersResponse(BaseModel):
    ok: bool = True
    mode: str
    count: int
    linked: int = 0
    created: int = 0
    failed: int = 0
    actions: list[MeterSyncAction] = Field(default_factory=list)
