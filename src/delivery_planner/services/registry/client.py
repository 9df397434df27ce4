"""HTTP client for the order/inventory/driver registry API."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

import httpx

from ...config import settings
from ...models.domain import Driver
from ..splitting.catalog import MaterialsCatalog

logger = logging.getLogger(__name__)


class RegistryClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.registry_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Registry base URL is not configured.")
        self.token = token if token is not None else settings.registry_token
        self.timeout = timeout if timeout is not None else settings.registry_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.registry_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.registry_backoff_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def _get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET ``path`` and unwrap the ``{"success": ..., "data": ...}`` envelope."""
        with self._client() as client:
            attempt = 0
            while True:
                try:
                    response = client.get(path, params=params)
                    response.raise_for_status()
                    payload = response.json()
                    break
                except httpx.HTTPStatusError as e:
                    # 4xx responses are not retried
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(f"Registry API at {self.base_url} is not reachable: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"Registry request {path} failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}"
                    )
                    time.sleep(wait_time)

        if isinstance(payload, dict) and "data" in payload:
            if payload.get("success") is False:
                raise ValueError(f"Registry request {path} failed: {payload.get('message', 'unknown error')}")
            return payload["data"]
        return payload

    def fetch_materials(self) -> MaterialsCatalog:
        records = self._get("/materials") or []
        catalog = MaterialsCatalog.from_records(records)
        logger.info(f"Fetched {len(catalog)} materials from registry")
        return catalog

    def fetch_drivers(self, active_only: bool = True) -> list[Driver]:
        params = {"available": "true"} if active_only else None
        records = self._get("/drivers", params=params) or []
        drivers = [driver_from_record(record) for record in records]
        if active_only:
            drivers = [driver for driver in drivers if driver.active]
        logger.info(f"Fetched {len(drivers)} drivers from registry")
        return drivers

    def check_health(self) -> bool:
        try:
            self._get("/health")
            return True
        except (httpx.HTTPError, ConnectionError, ValueError) as e:
            logger.warning(f"Registry health check failed: {e}")
            return False


def driver_from_record(record: Mapping[str, Any]) -> Driver:
    driver_id = record.get("_id") or record.get("id")
    if not driver_id:
        raise ValueError("Driver record is missing an id.")
    rating = record.get("rating")
    return Driver(
        driver_id=str(driver_id),
        name=str(record.get("name") or driver_id),
        phone=record.get("phone"),
        vehicle=record.get("vehicleType") or record.get("vehicle"),
        active=bool(record.get("isActive", record.get("active", True))),
        current_location=record.get("currentLocation"),
        total_deliveries=int(record.get("totalDeliveries") or 0),
        rating=float(rating) if rating is not None else None,
    )
