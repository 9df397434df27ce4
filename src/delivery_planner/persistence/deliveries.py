"""Delivery repositories backing the scheduling service."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace as _copy
from datetime import date
from pathlib import Path
from typing import Dict, List

from ..models.domain import Delivery, DeliveryStatus
from ..services.slots.timeslots import normalize_slot
from .filesystem import FileStorage

logger = logging.getLogger(__name__)


class DeliveryRepository(ABC):
    """Storage contract for deliveries. Implementations return copies, never live records."""

    @abstractmethod
    def all(self) -> List[Delivery]:
        ...

    @abstractmethod
    def get(self, delivery_id: str) -> Delivery | None:
        ...

    @abstractmethod
    def add(self, delivery: Delivery) -> None:
        ...

    @abstractmethod
    def replace(self, delivery: Delivery) -> None:
        ...

    @abstractmethod
    def delete(self, delivery_id: str) -> bool:
        ...


class InMemoryDeliveryRepository(DeliveryRepository):
    def __init__(self, deliveries: List[Delivery] | None = None) -> None:
        self._items: Dict[str, Delivery] = {}
        self._lock = threading.Lock()
        for delivery in deliveries or []:
            self._items[delivery.delivery_id] = _copy(delivery)

    def all(self) -> List[Delivery]:
        with self._lock:
            return [_copy(delivery) for delivery in self._items.values()]

    def get(self, delivery_id: str) -> Delivery | None:
        with self._lock:
            delivery = self._items.get(delivery_id)
            return _copy(delivery) if delivery else None

    def add(self, delivery: Delivery) -> None:
        with self._lock:
            if delivery.delivery_id in self._items:
                raise ValueError(f"Delivery '{delivery.delivery_id}' already exists.")
            self._items[delivery.delivery_id] = _copy(delivery)

    def replace(self, delivery: Delivery) -> None:
        with self._lock:
            if delivery.delivery_id not in self._items:
                raise KeyError(delivery.delivery_id)
            self._items[delivery.delivery_id] = _copy(delivery)

    def delete(self, delivery_id: str) -> bool:
        with self._lock:
            return self._items.pop(delivery_id, None) is not None


def delivery_to_record(delivery: Delivery) -> dict:
    return {
        "id": delivery.delivery_id,
        "orderId": delivery.order_id,
        "customer": delivery.customer,
        "address": delivery.address,
        "district": delivery.district,
        "date": delivery.date.isoformat(),
        "timeSlot": delivery.time_slot,
        "driver": delivery.driver_id,
        "status": delivery.status.value,
        "notes": delivery.notes,
    }


def delivery_from_record(record: dict) -> Delivery:
    return Delivery(
        delivery_id=str(record["id"]),
        order_id=str(record.get("orderId", "")),
        customer=str(record.get("customer", "")),
        address=str(record.get("address", "")),
        district=str(record["district"]),
        date=date.fromisoformat(str(record["date"])[:10]),
        time_slot=normalize_slot(str(record["timeSlot"])),
        driver_id=str(record["driver"]),
        status=DeliveryStatus(record.get("status", DeliveryStatus.SCHEDULED.value)),
        notes=str(record.get("notes") or ""),
    )


class JsonDeliveryRepository(InMemoryDeliveryRepository):
    """In-memory repository mirrored to a JSON file after every write."""

    def __init__(self, path: Path, storage: FileStorage | None = None) -> None:
        self.storage = storage or FileStorage(root=path.parent)
        self.path = path
        records = self.storage.read_json(path, default=[]) or []
        deliveries: list[Delivery] = []
        for record in records:
            try:
                deliveries.append(delivery_from_record(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid delivery record in {path}: {e}")
        super().__init__(deliveries)
        self._write_lock = threading.Lock()
        logger.info(f"Loaded {len(deliveries)} deliveries from {path}")

    def _flush(self) -> None:
        self.storage.write_json(self.path, [delivery_to_record(d) for d in self.all()])

    def add(self, delivery: Delivery) -> None:
        with self._write_lock:
            super().add(delivery)
            self._flush()

    def replace(self, delivery: Delivery) -> None:
        with self._write_lock:
            super().replace(delivery)
            self._flush()

    def delete(self, delivery_id: str) -> bool:
        with self._write_lock:
            removed = super().delete(delivery_id)
            if removed:
                self._flush()
        return removed
