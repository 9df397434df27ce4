"""Delivery scheduling request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import Delivery, DeliveryStatus, Driver
from ..services.slots.timeslots import normalize_slot


class DeliveryCreateRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    customer: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    delivery_date: dt.date = Field(..., description="Calendar date of the delivery.")
    time_slot: str = Field(..., description="Delivery window, e.g. '09:00-11:00'.")
    driver_id: str = Field(..., min_length=1)
    notes: str = ""

    @field_validator("time_slot")
    @classmethod
    def _check_slot(cls, value: str) -> str:
        return normalize_slot(value)


class DeliveryUpdateRequest(BaseModel):
    customer: Optional[str] = None
    address: Optional[str] = None
    district: Optional[str] = None
    delivery_date: Optional[dt.date] = None
    time_slot: Optional[str] = None
    driver_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("time_slot")
    @classmethod
    def _check_slot(cls, value: Optional[str]) -> Optional[str]:
        return normalize_slot(value) if value is not None else None


class StatusUpdateRequest(BaseModel):
    status: DeliveryStatus


class AvailabilityRequest(BaseModel):
    delivery_date: dt.date
    time_slot: str
    district: str
    driver_id: str
    exclude_id: Optional[str] = Field(default=None, description="Delivery being edited; ignored by both rules.")

    @field_validator("time_slot")
    @classmethod
    def _check_slot(cls, value: str) -> str:
        return normalize_slot(value)


class AvailabilityResponse(BaseModel):
    accepted: bool
    reason: str
    message: str


class DeliveryModel(BaseModel):
    id: str
    order_id: str
    customer: str
    address: str
    district: str
    delivery_date: dt.date
    time_slot: str
    driver_id: str
    status: DeliveryStatus
    notes: str

    @classmethod
    def from_domain(cls, delivery: Delivery) -> DeliveryModel:
        return cls(
            id=delivery.delivery_id,
            order_id=delivery.order_id,
            customer=delivery.customer,
            address=delivery.address,
            district=delivery.district,
            delivery_date=delivery.date,
            time_slot=delivery.time_slot,
            driver_id=delivery.driver_id,
            status=delivery.status,
            notes=delivery.notes,
        )


class SlotUsageModel(BaseModel):
    time_slot: str
    booked: int
    remaining: int
    busy_driver_ids: List[str]


class DriverModel(BaseModel):
    driver_id: str
    name: str
    phone: Optional[str] = None
    vehicle: Optional[str] = None
    active: bool = True
    current_location: Optional[str] = None
    total_deliveries: int = Field(0, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)

    def to_domain(self) -> Driver:
        return Driver(**self.model_dump())


class DriverAvailabilityRequest(BaseModel):
    delivery_date: dt.date
    time_slot: str
    selected_driver_id: Optional[str] = None
    drivers: Optional[List[DriverModel]] = Field(
        default=None,
        description="Drivers to evaluate. Fetched from the registry when omitted.",
    )

    @field_validator("time_slot")
    @classmethod
    def _check_slot(cls, value: str) -> str:
        return normalize_slot(value)


class DriverAvailabilityModel(BaseModel):
    driver: DriverModel
    available: bool


class DriverAvailabilityResponse(BaseModel):
    delivery_date: dt.date
    time_slot: str
    default_driver_id: Optional[str]
    drivers: List[DriverAvailabilityModel]
