from datetime import date, datetime, time

import pytest

from delivery_planner.models.domain import Material, OrderLine
from delivery_planner.services.policy import SplitPolicy
from delivery_planner.services.splitting.catalog import MaterialsCatalog
from delivery_planner.services.splitting.splitter import build_preview


def _catalog() -> MaterialsCatalog:
    return MaterialsCatalog(
        [
            Material(material_id="cement", name="Portland Cement 50kg", category="Cement", unit="bag", sku="CEM-50"),
            Material(material_id="steel", name="Rebar 12mm", category="Steel & Reinforcement", unit="bar"),
            Material(material_id="sand", name="River Sand", category="Aggregates", unit="cube"),
            Material(material_id="drill", name="Hammer Drill", category="Power Tools", unit="unit"),
            Material(material_id="ppc", name="PPC Cement", category="Cement", unit="bag"),
        ]
    )


BASE = datetime(2025, 6, 1, 8, 0)


def test_preview_groups_by_category_and_drops_invalid_lines():
    lines = [OrderLine("cement", 10), OrderLine("steel", 5), OrderLine("badMaterialId", 3)]

    preview = build_preview(lines, _catalog(), BASE)

    assert [c.category for c in preview] == ["Cement", "Steel & Reinforcement"]
    assert [c.total_items for c in preview] == [10, 5]
    assert [c.sequence_number for c in preview] == [1, 2]
    assert [c.priority_rank for c in preview] == [1, 2]


def test_preview_schedule_offsets_and_durations():
    lines = [OrderLine("sand", 2), OrderLine("cement", 10), OrderLine("steel", 5)]

    preview = build_preview(lines, _catalog(), BASE)

    assert [c.proposed_at for c in preview] == [
        datetime(2025, 6, 1, 8, 0),
        datetime(2025, 6, 1, 10, 0),
        datetime(2025, 6, 1, 12, 0),
    ]
    assert [c.estimated_duration_minutes for c in preview] == [50, 30, 30]
    assert preview[0].proposed_date == date(2025, 6, 1)
    assert preview[0].proposed_time == time(8, 0)


def test_unknown_category_sorts_last_with_fallback_rank():
    lines = [OrderLine("drill", 1), OrderLine("sand", 4)]

    preview = build_preview(lines, _catalog(), BASE)

    assert [c.category for c in preview] == ["Aggregates", "Power Tools"]
    assert preview[-1].priority_rank == 12
    assert preview[-1].proposed_at == datetime(2025, 6, 2, 6, 0)


def test_items_enriched_and_accumulated_per_category():
    lines = [OrderLine("cement", 4), OrderLine("ppc", 6), OrderLine("cement", 0), OrderLine("steel", -2)]

    preview = build_preview(lines, _catalog(), BASE)

    assert len(preview) == 1
    group = preview[0]
    assert group.total_items == 10
    assert [(item.material_id, item.requested_qty) for item in group.items] == [("cement", 4), ("ppc", 6)]
    assert group.items[0].sku == "CEM-50"
    assert group.items[0].unit == "bag"


def test_empty_preview_when_no_valid_lines():
    assert build_preview([], _catalog(), BASE) == []
    assert build_preview([OrderLine("missing", 5), OrderLine("cement", 0)], _catalog(), BASE) == []


def test_preview_is_idempotent_and_preserves_totals():
    lines = [OrderLine("steel", 3), OrderLine("drill", 2), OrderLine("cement", 7), OrderLine("sand", 1)]
    catalog = _catalog()

    first = build_preview(lines, catalog, BASE)
    second = build_preview(lines, catalog, BASE)

    assert first == second
    assert sum(c.total_items for c in first) == 13
    ranks = [c.priority_rank for c in first]
    assert ranks == sorted(ranks)


def test_equal_ranks_keep_grouping_order():
    policy = SplitPolicy(category_ranks={"Cement": 1}, fallback_rank=5)
    lines = [OrderLine("sand", 1), OrderLine("drill", 1), OrderLine("cement", 1)]

    preview = build_preview(lines, _catalog(), BASE, policy=policy)

    assert [c.category for c in preview] == ["Cement", "Aggregates", "Power Tools"]


def test_plain_date_base_uses_policy_day_start():
    policy = SplitPolicy(interval_minutes=60, day_start=time(7, 30), min_duration_minutes=10, per_item_minutes=1)

    preview = build_preview([OrderLine("steel", 3)], _catalog(), date(2025, 6, 1), policy=policy)

    assert preview[0].proposed_at == datetime(2025, 6, 1, 8, 30)
    assert preview[0].estimated_duration_minutes == 10


def test_candidate_builds_slot_request():
    preview = build_preview([OrderLine("cement", 10)], _catalog(), BASE)

    request = preview[0].as_slot_request("Colombo", "D1", "08:00-10:00")

    assert request.date == date(2025, 6, 1)
    assert request.district == "Colombo"
    assert request.driver_id == "D1"
    assert request.time_slot == "08:00-10:00"


def test_catalog_from_registry_records():
    catalog = MaterialsCatalog.from_records(
        [
            {"_id": "m1", "name": "Cement", "category": "Cement", "unit": "bag", "sku": "C1"},
            {"id": "m2", "name": "Nails", "category": "Hardware & Fasteners"},
            {"_id": "m3", "name": "No category"},
        ]
    )

    assert len(catalog) == 2
    assert catalog.resolve("m1").sku == "C1"
    assert catalog.resolve("m3") is None
    assert catalog.resolve(None) is None


def test_custom_rank_table_keeps_unlisted_categories_last():
    catalog = MaterialsCatalog(
        [
            Material(material_id="saw", name="Circular Saw", category="Tools", unit="unit"),
            Material(material_id="misc", name="Site Signage", category="Unlisted", unit="unit"),
        ]
    )
    policy = SplitPolicy(category_ranks={"Cement": 1, "Tools": 15}, fallback_rank=16)

    preview = build_preview([OrderLine("misc", 1), OrderLine("saw", 1)], catalog, BASE, policy=policy)

    assert [(c.category, c.priority_rank) for c in preview] == [("Tools", 15), ("Unlisted", 16)]


def test_fallback_rank_below_table_is_rejected():
    with pytest.raises(ValueError):
        SplitPolicy(category_ranks={"Cement": 1, "Tools": 15}, fallback_rank=12)
