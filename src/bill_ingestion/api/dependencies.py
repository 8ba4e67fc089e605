"""Shared FastAPI dependencies."""
from __future__ import annotations
from collections.abc import AsyncIterator
from fastapi import Request
from ..config import Settings
from ..registry.client import RegistryClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_registry_client(request: Request) -> AsyncIterator[RegistryClient]:
    """One registry client per request; closed when the response is sent."""
    async with RegistryClient(get_settings(request)) as client:
        yield client
