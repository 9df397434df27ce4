"""Parsing and validation of fixed-width delivery windows."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import time
from typing import Iterable

_SLOT_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$")


@dataclass(slots=True, frozen=True)
class TimeSlot:
    start: time
    end: time

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    @property
    def duration_minutes(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)

    def overlaps(self, other: TimeSlot) -> bool:
        return self.start < other.end and other.start < self.end


def parse_slot(label: str) -> TimeSlot:
    """Parse a ``HH:MM-HH:MM`` window label."""
    match = _SLOT_PATTERN.match(label or "")
    if not match:
        raise ValueError(f"Invalid time slot '{label}'. Expected HH:MM-HH:MM.")
    start_h, start_m, end_h, end_m = (int(part) for part in match.groups())
    try:
        start = time(start_h, start_m)
        end = time(end_h, end_m)
    except ValueError as exc:
        raise ValueError(f"Invalid time slot '{label}': {exc}") from exc
    if end <= start:
        raise ValueError(f"Time slot '{label}' must end after it starts.")
    return TimeSlot(start=start, end=end)


def normalize_slot(label: str) -> str:
    """Return the canonical label so ``9:00 - 11:00`` and ``09:00-11:00`` compare equal."""
    return parse_slot(label).label


def validate_slot_catalog(labels: Iterable[str]) -> tuple[TimeSlot, ...]:
    """Check a daily slot set is non-empty, same-width and non-overlapping."""
    slots = tuple(parse_slot(label) for label in labels)
    if not slots:
        raise ValueError("At least one delivery time slot must be configured.")

    widths = {slot.duration_minutes for slot in slots}
    if len(widths) > 1:
        raise ValueError(f"Time slots must share one width, got {sorted(widths)} minutes.")

    ordered = sorted(slots, key=lambda slot: slot.start)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            raise ValueError(f"Time slots '{previous.label}' and '{current.label}' overlap.")
    return tuple(ordered)
