"""Domain models for deliveries, drivers and catalog materials."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class DeliveryStatus(str, Enum):
    SCHEDULED = "Scheduled"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


@dataclass(slots=True)
class Delivery:
    """A single scheduled drop-off held by at most one driver."""

    delivery_id: str
    order_id: str
    customer: str
    address: str
    district: str
    date: date
    time_slot: str
    driver_id: str
    status: DeliveryStatus = DeliveryStatus.SCHEDULED
    notes: str = ""


@dataclass(slots=True)
class Driver:
    """Represents a delivery resource from the driver registry."""

    driver_id: str
    name: str
    phone: Optional[str] = None
    vehicle: Optional[str] = None
    active: bool = True
    current_location: Optional[str] = None
    total_deliveries: int = 0
    rating: Optional[float] = None


@dataclass(slots=True, frozen=True)
class Material:
    """Catalog entry used to resolve order lines."""

    material_id: str
    name: str
    category: str
    unit: Optional[str] = None
    sku: Optional[str] = None


@dataclass(slots=True, frozen=True)
class OrderLine:
    material_id: str
    quantity: int
