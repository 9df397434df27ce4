"""Delivery status transitions."""

from __future__ import annotations

from datetime import date

from ...models.domain import Delivery, DeliveryStatus
from .errors import InvalidTransitionError, PastDeliveryError

ALLOWED_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.SCHEDULED: frozenset({DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED}),
    DeliveryStatus.IN_TRANSIT: frozenset({DeliveryStatus.DELIVERED}),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: DeliveryStatus, target: DeliveryStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot change delivery status from '{current.value}' to '{target.value}'.")


def ensure_modifiable(delivery: Delivery, today: date) -> None:
    """Past deliveries are read-only."""
    if delivery.date < today:
        raise PastDeliveryError(
            f"Delivery '{delivery.delivery_id}' is dated {delivery.date.isoformat()} and can no longer be changed."
        )
