"""Async HTTP client for the external property registry (XML over Basic auth)."""
from __future__ import annotations

import asyncio
import random
import time

import httpx
import structlog

from ..config import Settings
from .xml import (
    PropertyLink,
    RegistryMeter,
    RegistryProperty,
    meter_xml,
    parse_account_id,
    parse_created_id,
    parse_meter_list,
    parse_property_detail,
    parse_property_list,
)

logger = structlog.get_logger(__name__)

# Backoff base per failure kind; doubled on each attempt plus jitter.
RATE_LIMIT_DELAY = 0.9
TRANSIENT_DELAY = 0.4
MAX_JITTER = 0.15

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS = (
    httpx.TransportError,
    httpx.TimeoutException,
)

METER_TYPES = {"electric": "Electric", "gas": "Natural Gas"}
METER_UNITS = {"electric": "kWh (thousand Watt-hours)", "gas": "MCF"}


class RegistryError(Exception):
    """A registry request failed after all retries, or returned an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class _RetryableStatus(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def backoff_delay(attempt: int, status_code: int | None) -> float:
    """Delay before retry number *attempt* (1-based)."""
    base = RATE_LIMIT_DELAY if status_code == 429 else TRANSIENT_DELAY
    return base * 2 ** (attempt - 1) + random.uniform(0, MAX_JITTER)


class RegistryClient:
    """Throttled, retrying client for the registry's account/property/meter API.

    Requests are spaced at least ``registry_min_interval`` seconds apart.
    HTTP 429, 5xx responses and transport errors are retried with exponential
    backoff up to ``registry_max_attempts``; then :class:`RegistryError` is
    raised. Use as an async context manager.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._min_interval = settings.registry_min_interval
        self._max_attempts = settings.registry_max_attempts
        self._account_id = settings.registry_account_id or None
        self._last_request = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            base_url=settings.registry_base_url.rstrip("/"),
            auth=httpx.BasicAuth(settings.registry_username, settings.registry_password.get_secret_value()),
            timeout=settings.registry_timeout,
            headers={"Accept": "application/xml", "Content-Type": "application/xml"},
            transport=transport,
        )

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _throttle(self) -> None:
        async with self._lock:
            wait = self._last_request + self._min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = time.monotonic()

    async def request(self, method: str, path: str, body: str | None = None) -> str:
        """Send one request with throttling and retries; return the body text."""
        last_exception: Exception | None = None

        for attempt in range(1, self._max_attempts + 1):
            await self._throttle()
            status_code: int | None = None
            try:
                response = await self._client.request(method, path, content=body)
                if response.status_code in RETRYABLE_STATUS:
                    raise _RetryableStatus(response)
                if response.is_error:
                    logger.error(
                        "registry_request_failed",
                        method=method,
                        path=path,
                        status_code=response.status_code,
                    )
                    raise RegistryError(
                        f"{method} {path} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                return response.text

            except (_RetryableStatus, *RETRYABLE_EXCEPTIONS) as exc:
                last_exception = exc
                if isinstance(exc, _RetryableStatus):
                    status_code = exc.response.status_code
                if attempt < self._max_attempts:
                    delay = backoff_delay(attempt, status_code)
                    logger.warning(
                        "registry_request_retry",
                        method=method,
                        path=path,
                        attempt=attempt,
                        delay=round(delay, 3),
                        error=str(exc),
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        "registry_request_exhausted_retries",
                        method=method,
                        path=path,
                        attempts=self._max_attempts,
                        error=str(exc),
                    )

        status = last_exception.response.status_code if isinstance(last_exception, _RetryableStatus) else None
        raise RegistryError(f"{method} {path} failed: {last_exception}", status_code=status)

    # ── Account & properties ─────────────────────────────────────────────

    async def get_account_id(self) -> str:
        if self._account_id:
            return self._account_id
        account_id = parse_account_id(await self.request("GET", "/account"))
        if not account_id:
            raise RegistryError("account response carried no numeric account id")
        self._account_id = account_id
        return account_id

    async def get_property(self, property_id: str) -> RegistryProperty | None:
        return parse_property_detail(await self.request("GET", f"/property/{property_id}"))

    async def list_properties(self) -> list[RegistryProperty]:
        """All properties on the account, hydrating ``<link>`` stubs one by one.

        A stub that cannot be fetched degrades to an id + name-hint record.
        """
        account_id = await self.get_account_id()
        properties, links = parse_property_list(
            await self.request("GET", f"/account/{account_id}/property/list")
        )
        for link in links:
            properties.append(await self._hydrate(link))
        logger.info("registry_properties_listed", count=len(properties), hydrated=len(links))
        return properties

    async def _hydrate(self, link: PropertyLink) -> RegistryProperty:
        try:
            detail = await self.get_property(link.id)
        except RegistryError as exc:
            logger.warning("registry_property_hydrate_failed", property_id=link.id, error=str(exc))
            detail = None
        if detail is None:
            return RegistryProperty(property_id=link.id, name=link.hint)
        if not detail.name and link.hint:
            return RegistryProperty(
                property_id=detail.property_id,
                name=link.hint,
                address1=detail.address1,
                city=detail.city,
                state=detail.state,
                postal_code=detail.postal_code,
            )
        return detail

    # ── Meters ───────────────────────────────────────────────────────────

    async def list_meters(self, property_id: str) -> list[RegistryMeter]:
        return parse_meter_list(await self.request("GET", f"/property/{property_id}/meter/list"))

    async def create_meter(self, property_id: str, utility: str, name: str | None = None) -> str:
        """Create a meter under *property_id* and return its registry id."""
        body = meter_xml(METER_TYPES[utility], METER_UNITS[utility], name=name)
        created = parse_created_id(await self.request("POST", f"/property/{property_id}/meter", body))
        if not created:
            raise RegistryError(f"create meter response for property {property_id} carried no id")
        logger.info("registry_meter_created", property_id=property_id, registry_meter_id=created, utility=utility)
        return created
