"""Errors raised by the scheduling service."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .allocator import AllocationOutcome


class SchedulingError(ValueError):
    """Base error for requests the scheduler refuses."""


class SlotUnavailableError(SchedulingError):
    def __init__(self, outcome: AllocationOutcome) -> None:
        super().__init__(outcome.message)
        self.outcome = outcome


class InvalidTransitionError(SchedulingError):
    pass


class PastDeliveryError(SchedulingError):
    pass


class DeliveryNotFoundError(LookupError):
    def __init__(self, delivery_id: str) -> None:
        super().__init__(f"Delivery '{delivery_id}' not found.")
        self.delivery_id = delivery_id
