"""Delivery slot allocation rules.

Every function here is a pure predicate over a snapshot of existing deliveries.
Two rules apply to a requested booking once its date is not in the past:

* a driver holds at most one delivery per ``(date, time_slot)``;
* a district accepts at most ``policy.district_capacity`` deliveries per
  ``(date, time_slot)``.

Deliveries of every status count toward both rules. Callers that edit an
existing delivery pass its id as ``exclude_id`` so it does not conflict with
itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ...models.domain import Delivery, Driver
from ..policy import AllocationPolicy


class AllocationOutcome(str, Enum):
    ACCEPTED = "accepted"
    PAST_DATE = "past_date"
    UNKNOWN_SLOT = "unknown_slot"
    DRIVER_CONFLICT = "driver_conflict"
    CAPACITY_EXCEEDED = "capacity_exceeded"

    @property
    def accepted(self) -> bool:
        return self is AllocationOutcome.ACCEPTED

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    AllocationOutcome.ACCEPTED: "Time slot is available.",
    AllocationOutcome.PAST_DATE: "Cannot schedule delivery for past dates. Please select today or a future date.",
    AllocationOutcome.UNKNOWN_SLOT: "Requested time slot is not offered for delivery.",
    AllocationOutcome.DRIVER_CONFLICT: "Driver is already booked for this date and time slot.",
    AllocationOutcome.CAPACITY_EXCEEDED: "Maximum deliveries for this district and time slot has been reached.",
}


@dataclass(slots=True, frozen=True)
class SlotRequest:
    date: date
    time_slot: str
    district: str
    driver_id: str


@dataclass(slots=True)
class DriverAvailability:
    driver: Driver
    available: bool


@dataclass(slots=True)
class SlotUsage:
    time_slot: str
    booked: int
    remaining: int
    busy_driver_ids: List[str] = field(default_factory=list)


def _others(existing: Iterable[Delivery], exclude_id: Optional[str]) -> Iterable[Delivery]:
    if exclude_id is None:
        return existing
    return (delivery for delivery in existing if delivery.delivery_id != exclude_id)


def check_allocation(
    existing: Sequence[Delivery],
    request: SlotRequest,
    *,
    policy: AllocationPolicy,
    exclude_id: str | None = None,
    today: date | None = None,
) -> AllocationOutcome:
    """Classify a booking request against the current deliveries."""
    today = today or date.today()
    if request.date < today:
        return AllocationOutcome.PAST_DATE

    if policy.enforce_slot_catalog and request.time_slot not in policy.time_slots:
        return AllocationOutcome.UNKNOWN_SLOT

    in_slot = [
        delivery
        for delivery in _others(existing, exclude_id)
        if delivery.date == request.date and delivery.time_slot == request.time_slot
    ]

    if any(delivery.driver_id == request.driver_id for delivery in in_slot):
        return AllocationOutcome.DRIVER_CONFLICT

    district_count = sum(1 for delivery in in_slot if delivery.district == request.district)
    if district_count >= policy.district_capacity:
        return AllocationOutcome.CAPACITY_EXCEEDED

    return AllocationOutcome.ACCEPTED


def can_allocate(
    existing: Sequence[Delivery],
    request: SlotRequest,
    *,
    policy: AllocationPolicy,
    exclude_id: str | None = None,
    today: date | None = None,
) -> bool:
    return check_allocation(existing, request, policy=policy, exclude_id=exclude_id, today=today).accepted


def available_drivers(
    drivers: Sequence[Driver],
    existing: Sequence[Delivery],
    on_date: date,
    time_slot: str,
) -> list[DriverAvailability]:
    """Annotate every driver with availability for ``(on_date, time_slot)``.

    Busy and inactive drivers are kept in the result, flagged unavailable, so
    callers can still list them.
    """
    busy = {
        delivery.driver_id
        for delivery in existing
        if delivery.date == on_date and delivery.time_slot == time_slot
    }
    return [
        DriverAvailability(driver=driver, available=driver.active and driver.driver_id not in busy)
        for driver in drivers
    ]


def default_driver(
    availabilities: Sequence[DriverAvailability],
    selected: str | None = None,
) -> Driver | None:
    """Return the chosen driver, else the first available one."""
    if selected:
        for entry in availabilities:
            if entry.driver.driver_id == selected:
                return entry.driver
    for entry in availabilities:
        if entry.available:
            return entry.driver
    return None


def slot_usage(
    existing: Sequence[Delivery],
    on_date: date,
    district: str,
    *,
    policy: AllocationPolicy,
) -> list[SlotUsage]:
    """Per-slot bookings for one district on one day."""
    usage: list[SlotUsage] = []
    for label in policy.time_slots:
        in_slot = [d for d in existing if d.date == on_date and d.time_slot == label]
        booked = sum(1 for d in in_slot if d.district == district)
        usage.append(
            SlotUsage(
                time_slot=label,
                booked=booked,
                remaining=max(0, policy.district_capacity - booked),
                busy_driver_ids=sorted({d.driver_id for d in in_slot}),
            )
        )
    return usage
