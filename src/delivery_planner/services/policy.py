"""Scheduling policy values injected into the allocator and the order splitter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time, timedelta
from types import MappingProxyType
from typing import Mapping

from ..config import DEFAULT_CATEGORY_RANKS, Settings
from .slots.timeslots import validate_slot_catalog

DEFAULT_TIME_SLOTS: tuple[str, ...] = (
    "08:00-10:00",
    "10:00-12:00",
    "13:00-15:00",
    "15:00-17:00",
    "17:00-19:00",
)


@dataclass(slots=True, frozen=True)
class AllocationPolicy:
    district_capacity: int = 3
    time_slots: tuple[str, ...] = DEFAULT_TIME_SLOTS
    enforce_slot_catalog: bool = False

    def __post_init__(self) -> None:
        if self.district_capacity < 1:
            raise ValueError("district_capacity must be >= 1")
        catalog = validate_slot_catalog(self.time_slots)
        object.__setattr__(self, "time_slots", tuple(slot.label for slot in catalog))

    @classmethod
    def from_settings(cls, config: Settings) -> AllocationPolicy:
        return cls(
            district_capacity=config.district_capacity,
            time_slots=tuple(config.time_slots),
            enforce_slot_catalog=config.enforce_slot_catalog,
        )


@dataclass(slots=True, frozen=True)
class SplitPolicy:
    """Category precedence and handling-time estimates for order previews.

    ``category_ranks`` maps category names to dispatch ranks (lower is earlier);
    categories missing from the table fall back to ``fallback_rank``, which may not
    rank ahead of any listed category.
    """

    category_ranks: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_CATEGORY_RANKS))
    fallback_rank: int = 12
    interval_minutes: int = 120
    min_duration_minutes: int = 30
    per_item_minutes: int = 5
    day_start: time = time(8, 0)

    def __post_init__(self) -> None:
        if self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be > 0")
        if self.min_duration_minutes < 0 or self.per_item_minutes < 0:
            raise ValueError("duration settings must be >= 0")
        if self.fallback_rank < 1 or any(rank < 1 for rank in self.category_ranks.values()):
            raise ValueError("category ranks must be >= 1")
        highest = max(self.category_ranks.values(), default=0)
        if self.fallback_rank < highest:
            raise ValueError(
                f"fallback_rank ({self.fallback_rank}) must be >= the highest category rank ({highest}) "
                "so unlisted categories are scheduled last"
            )
        object.__setattr__(self, "category_ranks", MappingProxyType(dict(self.category_ranks)))

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)

    def rank_for(self, category: str) -> int:
        return self.category_ranks.get(category, self.fallback_rank)

    def duration_for(self, total_items: int) -> int:
        return max(self.min_duration_minutes, total_items * self.per_item_minutes)

    @classmethod
    def from_settings(cls, config: Settings) -> SplitPolicy:
        return cls(
            category_ranks=dict(config.category_ranks),
            fallback_rank=config.fallback_category_rank,
            interval_minutes=config.preview_interval_minutes,
            min_duration_minutes=config.min_handling_minutes,
            per_item_minutes=config.per_item_minutes,
            day_start=config.preview_day_start,
        )
