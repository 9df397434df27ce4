"""Split an order into category sub-deliveries with advisory times."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, List, Sequence

from ...models.domain import Material, OrderLine
from ..policy import SplitPolicy
from ..slots.allocator import SlotRequest
from .catalog import MaterialsCatalog


@dataclass(slots=True, frozen=True)
class PreviewItem:
    material_id: str
    name: str
    category: str
    unit: str | None
    sku: str | None
    requested_qty: int

    @classmethod
    def from_material(cls, material: Material, quantity: int) -> PreviewItem:
        return cls(
            material_id=material.material_id,
            name=material.name,
            category=material.category,
            unit=material.unit,
            sku=material.sku,
            requested_qty=quantity,
        )


@dataclass(slots=True)
class SubDeliveryCandidate:
    sequence_number: int
    category: str
    items: List[PreviewItem]
    total_items: int
    priority_rank: int
    proposed_at: datetime
    estimated_duration_minutes: int

    @property
    def proposed_date(self) -> date:
        return self.proposed_at.date()

    @property
    def proposed_time(self) -> time:
        return self.proposed_at.time()

    def as_slot_request(self, district: str, driver_id: str, time_slot: str) -> SlotRequest:
        """Template for confirming this candidate through the allocator."""
        return SlotRequest(date=self.proposed_date, time_slot=time_slot, district=district, driver_id=driver_id)


@dataclass(slots=True)
class _CategoryGroup:
    category: str
    items: List[PreviewItem] = field(default_factory=list)
    total_items: int = 0


def _base_datetime(base_date: date | datetime, policy: SplitPolicy) -> datetime:
    if isinstance(base_date, datetime):
        return base_date
    return datetime.combine(base_date, policy.day_start)


def build_preview(
    order_lines: Sequence[OrderLine],
    catalog: MaterialsCatalog,
    base_date: date | datetime,
    *,
    policy: SplitPolicy | None = None,
) -> list[SubDeliveryCandidate]:
    """Group valid order lines by category and sequence the groups by priority rank.

    Lines whose material is not in ``catalog`` or whose quantity is below one are
    dropped. Returns an empty list when nothing valid remains.
    """
    policy = policy or SplitPolicy()

    groups: Dict[str, _CategoryGroup] = {}
    for line in order_lines:
        if line.quantity < 1:
            continue
        material = catalog.resolve(line.material_id)
        if material is None:
            continue
        group = groups.setdefault(material.category, _CategoryGroup(category=material.category))
        group.items.append(PreviewItem.from_material(material, line.quantity))
        group.total_items += line.quantity

    if not groups:
        return []

    base = _base_datetime(base_date, policy)
    # sorted() is stable, so equal ranks keep first-seen category order
    ranked = sorted(groups.values(), key=lambda group: policy.rank_for(group.category))

    candidates: list[SubDeliveryCandidate] = []
    for sequence_number, group in enumerate(ranked, start=1):
        rank = policy.rank_for(group.category)
        candidates.append(
            SubDeliveryCandidate(
                sequence_number=sequence_number,
                category=group.category,
                items=list(group.items),
                total_items=group.total_items,
                priority_rank=rank,
                proposed_at=base + (rank - 1) * policy.interval,
                estimated_duration_minutes=policy.duration_for(group.total_items),
            )
        )
    return candidates
