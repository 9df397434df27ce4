"""Shared service instances for the route handlers."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..config import settings
from ..persistence.deliveries import DeliveryRepository, InMemoryDeliveryRepository, JsonDeliveryRepository
from ..services.policy import AllocationPolicy, SplitPolicy
from ..services.registry.client import RegistryClient
from ..services.slots.service import DeliveryScheduler


def _build_repository() -> DeliveryRepository:
    path = settings.deliveries_path
    if path is None:
        logging.info("No deliveries file configured; using in-memory delivery store")
        return InMemoryDeliveryRepository()
    return JsonDeliveryRepository(path)


@lru_cache()
def get_scheduler() -> DeliveryScheduler:
    return DeliveryScheduler(_build_repository(), AllocationPolicy.from_settings(settings))


@lru_cache()
def get_split_policy() -> SplitPolicy:
    return SplitPolicy.from_settings(settings)


def get_registry_client() -> RegistryClient | None:
    """Registry client, or ``None`` when no registry URL is configured."""
    if not settings.registry_base_url:
        return None
    return RegistryClient()
