"""Scheduling orchestration service."""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ...models.domain import Delivery, DeliveryStatus, Driver
from ...persistence.deliveries import DeliveryRepository
from ..policy import AllocationPolicy
from .allocator import (
    AllocationOutcome,
    DriverAvailability,
    SlotRequest,
    SlotUsage,
    available_drivers,
    check_allocation,
    slot_usage,
)
from .errors import DeliveryNotFoundError, SlotUnavailableError
from .lifecycle import ensure_modifiable, ensure_transition
from .timeslots import normalize_slot

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeliveryDraft:
    order_id: str
    customer: str
    address: str
    district: str
    date: date
    time_slot: str
    driver_id: str
    notes: str = ""


@dataclass(slots=True)
class DeliveryChanges:
    customer: Optional[str] = None
    address: Optional[str] = None
    district: Optional[str] = None
    date: Optional[date] = None
    time_slot: Optional[str] = None
    driver_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class PreviewBooking:
    """A sub-delivery candidate paired with the slot the dispatcher picked for it."""

    sequence_number: int
    category: str
    draft: DeliveryDraft


@dataclass(slots=True)
class ConfirmationResult:
    sequence_number: int
    category: str
    outcome: AllocationOutcome
    delivery: Optional[Delivery] = None


def _new_delivery_id() -> str:
    return f"DEL-{uuid.uuid4().hex[:9]}"


LOCK_STRIPES = 64


class DeliveryScheduler:
    """Serialises check-then-write per ``(date, time_slot)`` over a delivery repository.

    Both allocation rules are scoped to a single ``(date, time_slot)``, so holding
    that key's lock around snapshot, check and write is enough to stop two
    concurrent bookings from both passing the check. Edits to an existing delivery
    also hold a per-delivery lock and re-read the record under it.

    Locks come from fixed pools indexed by key hash. Lock order is delivery then slot.
    """

    def __init__(
        self,
        repository: DeliveryRepository,
        policy: AllocationPolicy | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.repository = repository
        self.policy = policy or AllocationPolicy()
        self.clock = clock
        self._slot_locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))
        self._delivery_locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    @contextmanager
    def _slot_lock(self, on_date: date, time_slot: str) -> Iterator[None]:
        with self._slot_locks[hash((on_date, time_slot)) % LOCK_STRIPES]:
            yield

    @contextmanager
    def _delivery_lock(self, delivery_id: str) -> Iterator[None]:
        with self._delivery_locks[hash(delivery_id) % LOCK_STRIPES]:
            yield

    def _get(self, delivery_id: str) -> Delivery:
        delivery = self.repository.get(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(delivery_id)
        return delivery

    def _replace(self, delivery: Delivery) -> None:
        try:
            self.repository.replace(delivery)
        except KeyError as exc:
            raise DeliveryNotFoundError(delivery.delivery_id) from exc

    def check(self, request: SlotRequest, exclude_id: str | None = None) -> AllocationOutcome:
        request = replace(request, time_slot=normalize_slot(request.time_slot))
        return check_allocation(
            self.repository.all(),
            request,
            policy=self.policy,
            exclude_id=exclude_id,
            today=self.clock(),
        )

    def schedule(self, draft: DeliveryDraft) -> Delivery:
        time_slot = normalize_slot(draft.time_slot)
        request = SlotRequest(date=draft.date, time_slot=time_slot, district=draft.district, driver_id=draft.driver_id)
        with self._slot_lock(draft.date, time_slot):
            outcome = check_allocation(self.repository.all(), request, policy=self.policy, today=self.clock())
            if not outcome.accepted:
                logger.info(
                    f"Rejected delivery for order '{draft.order_id}' at {draft.date} {time_slot} "
                    f"({draft.district}, driver {draft.driver_id}): {outcome.value}"
                )
                raise SlotUnavailableError(outcome)
            delivery = Delivery(
                delivery_id=_new_delivery_id(),
                order_id=draft.order_id,
                customer=draft.customer,
                address=draft.address,
                district=draft.district,
                date=draft.date,
                time_slot=time_slot,
                driver_id=draft.driver_id,
                status=DeliveryStatus.SCHEDULED,
                notes=draft.notes,
            )
            self.repository.add(delivery)
        logger.info(f"Scheduled delivery {delivery.delivery_id} at {delivery.date} {delivery.time_slot} ({delivery.district})")
        return delivery

    def reschedule(self, delivery_id: str, changes: DeliveryChanges) -> Delivery:
        time_slot = normalize_slot(changes.time_slot) if changes.time_slot is not None else None
        with self._delivery_lock(delivery_id):
            current = self._get(delivery_id)
            ensure_modifiable(current, self.clock())
            updated = replace(
                current,
                customer=changes.customer if changes.customer is not None else current.customer,
                address=changes.address if changes.address is not None else current.address,
                district=changes.district if changes.district is not None else current.district,
                date=changes.date if changes.date is not None else current.date,
                time_slot=time_slot if time_slot is not None else current.time_slot,
                driver_id=changes.driver_id if changes.driver_id is not None else current.driver_id,
                notes=changes.notes if changes.notes is not None else current.notes,
            )
            request = SlotRequest(
                date=updated.date, time_slot=updated.time_slot, district=updated.district, driver_id=updated.driver_id
            )
            with self._slot_lock(updated.date, updated.time_slot):
                outcome = check_allocation(
                    self.repository.all(), request, policy=self.policy, exclude_id=delivery_id, today=self.clock()
                )
                if not outcome.accepted:
                    raise SlotUnavailableError(outcome)
                self._replace(updated)
        logger.info(f"Updated delivery {delivery_id} to {updated.date} {updated.time_slot} ({updated.district})")
        return updated

    def update_status(self, delivery_id: str, status: DeliveryStatus) -> Delivery:
        with self._delivery_lock(delivery_id):
            current = self._get(delivery_id)
            ensure_modifiable(current, self.clock())
            ensure_transition(current.status, status)
            if current.status == status:
                return current
            updated = replace(current, status=status)
            self._replace(updated)
        logger.info(f"Delivery {delivery_id} status {current.status.value} -> {status.value}")
        return updated

    def cancel(self, delivery_id: str) -> Delivery:
        return self.update_status(delivery_id, DeliveryStatus.CANCELLED)

    def remove(self, delivery_id: str) -> None:
        with self._delivery_lock(delivery_id):
            current = self._get(delivery_id)
            ensure_modifiable(current, self.clock())
            if not self.repository.delete(delivery_id):
                raise DeliveryNotFoundError(delivery_id)
        logger.info(f"Removed delivery {delivery_id}")

    def list_deliveries(
        self,
        on_date: date | None = None,
        district: str | None = None,
        driver_id: str | None = None,
        status: DeliveryStatus | None = None,
    ) -> List[Delivery]:
        deliveries = self.repository.all()
        if on_date is not None:
            deliveries = [d for d in deliveries if d.date == on_date]
        if district:
            deliveries = [d for d in deliveries if d.district == district]
        if driver_id:
            deliveries = [d for d in deliveries if d.driver_id == driver_id]
        if status is not None:
            deliveries = [d for d in deliveries if d.status == status]
        return sorted(deliveries, key=lambda d: (d.date, d.time_slot, d.delivery_id))

    def driver_board(self, drivers: Sequence[Driver], on_date: date, time_slot: str) -> List[DriverAvailability]:
        return available_drivers(drivers, self.repository.all(), on_date, normalize_slot(time_slot))

    def slot_board(self, on_date: date, district: str) -> List[SlotUsage]:
        return slot_usage(self.repository.all(), on_date, district, policy=self.policy)

    def confirm_preview(self, bookings: Sequence[PreviewBooking]) -> List[ConfirmationResult]:
        """Book each candidate independently.

        A rejected candidate is reported in its result and does not stop the rest.
        """
        results: List[ConfirmationResult] = []
        for booking in bookings:
            try:
                delivery = self.schedule(booking.draft)
            except SlotUnavailableError as exc:
                results.append(ConfirmationResult(booking.sequence_number, booking.category, exc.outcome))
                continue
            results.append(
                ConfirmationResult(booking.sequence_number, booking.category, AllocationOutcome.ACCEPTED, delivery)
            )
        return results
