"""Property registry linking routes."""
from __future__ import annotations
import structlog
from fastapi import APIRouter, Depends
from ...models.registry import LinkBuildingsResponse, RegistryRequest, SyncMetersResponse
from ...registry.client import RegistryClient
from ...registry.service import RegistrySyncService
from ...storage.database import get_session
from ..dependencies import get_registry_client

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post("/link-buildings", response_model=LinkBuildingsResponse)
async def link_buildings(
    request: RegistryRequest,
    session=Depends(get_session),
    client: RegistryClient = Depends(get_registry_client),
):
    """Match unlinked buildings to registry properties; auto-commit safe matches."""
    service = RegistrySyncService(session, client)
    response = await service.link_buildings(request.org_id, dry_run=request.dry_run)
    if not request.dry_run:
        await session.commit()
        logger.info("registry_links_committed", org_id=str(request.org_id), committed=response.committed)
    return response


@router.post("/sync-meters", response_model=SyncMetersResponse)
async def sync_meters(
    request: RegistryRequest,
    session=Depends(get_session),
    client: RegistryClient = Depends(get_registry_client),
):
    """Link or create a registry meter for every local meter without one."""
    service = RegistrySyncService(session, client)
    response = await service.sync_meters(request.org_id, dry_run=request.dry_run)
    if not request.dry_run:
        await session.commit()
        logger.info(
            "registry_meters_committed",
            org_id=str(request.org_id),
            linked=response.linked,
            created=response.created,
        )
    return response
