"""Materials catalog lookup used to resolve order lines."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, Mapping

from ...models.domain import Material

logger = logging.getLogger(__name__)


class MaterialsCatalog(Mapping[str, Material]):
    """Read-only ``material_id -> Material`` mapping."""

    def __init__(self, materials: Iterable[Material] = ()) -> None:
        self._by_id: Dict[str, Material] = {material.material_id: material for material in materials}

    def __getitem__(self, material_id: str) -> Material:
        return self._by_id[material_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)

    def resolve(self, material_id: str | None) -> Material | None:
        if not material_id:
            return None
        return self._by_id.get(material_id)

    @classmethod
    def from_records(cls, records: Iterable[Mapping]) -> MaterialsCatalog:
        """Build a catalog from registry payloads, skipping records without id or category."""
        materials: list[Material] = []
        skipped = 0
        for record in records:
            material_id = record.get("_id") or record.get("id") or record.get("material_id")
            category = record.get("category")
            if not material_id or not category:
                skipped += 1
                continue
            materials.append(
                Material(
                    material_id=str(material_id),
                    name=str(record.get("name") or material_id),
                    category=str(category),
                    unit=record.get("unit"),
                    sku=record.get("sku"),
                )
            )
        if skipped:
            logger.warning(f"Skipped {skipped} catalog records without id or category")
        return cls(materials)
