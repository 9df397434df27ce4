from datetime import date, timedelta

import pytest

from delivery_planner.models.domain import Delivery, DeliveryStatus, Driver
from delivery_planner.services.policy import AllocationPolicy
from delivery_planner.services.slots.allocator import (
    AllocationOutcome,
    SlotRequest,
    available_drivers,
    can_allocate,
    check_allocation,
    default_driver,
    slot_usage,
)

TODAY = date(2025, 5, 20)
DAY = date(2025, 6, 1)
POLICY = AllocationPolicy()


def _delivery(
    did: str,
    driver: str,
    district: str = "Colombo",
    on: date = DAY,
    slot: str = "09:00-11:00",
    status: DeliveryStatus = DeliveryStatus.SCHEDULED,
) -> Delivery:
    return Delivery(
        delivery_id=did,
        order_id=f"ORD-{did}",
        customer="Royal Builders",
        address="123 Galle Road, Colombo 04",
        district=district,
        date=on,
        time_slot=slot,
        driver_id=driver,
        status=status,
    )


def _request(driver: str, district: str = "Colombo", on: date = DAY, slot: str = "09:00-11:00") -> SlotRequest:
    return SlotRequest(date=on, time_slot=slot, district=district, driver_id=driver)


def test_district_capacity_rejects_fourth_delivery():
    existing = [_delivery("DEL-1", "D1"), _delivery("DEL-2", "D2"), _delivery("DEL-3", "D3")]

    outcome = check_allocation(existing, _request("D4"), policy=POLICY, today=TODAY)
    assert outcome is AllocationOutcome.CAPACITY_EXCEEDED
    assert not can_allocate(existing, _request("D4"), policy=POLICY, today=TODAY)

    # Another district shares no capacity with Colombo
    assert can_allocate(existing, _request("D4", district="Gampaha"), policy=POLICY, today=TODAY)


def test_third_delivery_in_district_is_accepted():
    existing = [_delivery("DEL-1", "D1"), _delivery("DEL-2", "D2")]

    assert check_allocation(existing, _request("D3"), policy=POLICY, today=TODAY) is AllocationOutcome.ACCEPTED


def test_capacity_comes_from_policy():
    existing = [_delivery("DEL-1", "D1")]
    tight = AllocationPolicy(district_capacity=1)

    assert check_allocation(existing, _request("D2"), policy=tight, today=TODAY) is AllocationOutcome.CAPACITY_EXCEEDED


def test_driver_cannot_be_double_booked():
    existing = [_delivery("DEL-1", "D1", district="Kandy")]

    outcome = check_allocation(existing, _request("D1", district="Galle"), policy=POLICY, today=TODAY)
    assert outcome is AllocationOutcome.DRIVER_CONFLICT


def test_driver_free_in_other_slot_and_other_date():
    existing = [_delivery("DEL-1", "D1")]

    assert can_allocate(existing, _request("D1", slot="13:00-15:00"), policy=POLICY, today=TODAY)
    assert can_allocate(existing, _request("D1", on=DAY + timedelta(days=1)), policy=POLICY, today=TODAY)


def test_past_date_is_rejected_before_other_rules():
    yesterday = TODAY - timedelta(days=1)

    outcome = check_allocation([], _request("D1", on=yesterday), policy=POLICY, today=TODAY)
    assert outcome is AllocationOutcome.PAST_DATE
    assert "past" in outcome.message


def test_today_is_allocatable():
    assert can_allocate([], _request("D1", on=TODAY), policy=POLICY, today=TODAY)


def test_self_exclusion_on_edit():
    existing = [_delivery("DEL-1", "D1"), _delivery("DEL-2", "D2"), _delivery("DEL-3", "D3")]

    # Re-saving DEL-3 unchanged must not conflict with itself on either rule
    outcome = check_allocation(existing, _request("D3"), policy=POLICY, exclude_id="DEL-3", today=TODAY)
    assert outcome is AllocationOutcome.ACCEPTED


def test_cancelled_deliveries_still_count():
    existing = [_delivery("DEL-1", "D1", status=DeliveryStatus.CANCELLED)]

    assert check_allocation(existing, _request("D1"), policy=POLICY, today=TODAY) is AllocationOutcome.DRIVER_CONFLICT


def test_unknown_slot_only_rejected_when_catalog_enforced():
    strict = AllocationPolicy(enforce_slot_catalog=True)

    assert check_allocation([], _request("D1"), policy=strict, today=TODAY) is AllocationOutcome.UNKNOWN_SLOT
    assert can_allocate([], _request("D1", slot="08:00-10:00"), policy=strict, today=TODAY)
    assert can_allocate([], _request("D1"), policy=POLICY, today=TODAY)


def test_policy_rejects_overlapping_slots():
    with pytest.raises(ValueError):
        AllocationPolicy(time_slots=("08:00-10:00", "09:00-11:00"))
    with pytest.raises(ValueError):
        AllocationPolicy(district_capacity=0)


def test_available_drivers_keeps_busy_entries():
    drivers = [
        Driver(driver_id="D1", name="Kumara Perera"),
        Driver(driver_id="D2", name="Nimal Silva"),
        Driver(driver_id="D3", name="Raj Patel", active=False),
    ]
    existing = [_delivery("DEL-1", "D1")]

    board = available_drivers(drivers, existing, DAY, "09:00-11:00")

    assert [entry.driver.driver_id for entry in board] == ["D1", "D2", "D3"]
    assert [entry.available for entry in board] == [False, True, False]
    assert default_driver(board).driver_id == "D2"
    assert default_driver(board, selected="D1").driver_id == "D1"


def test_default_driver_none_when_all_busy():
    drivers = [Driver(driver_id="D1", name="Kumara Perera")]
    board = available_drivers(drivers, [_delivery("DEL-1", "D1")], DAY, "09:00-11:00")

    assert default_driver(board) is None


def test_slot_usage_reports_remaining_capacity():
    existing = [
        _delivery("DEL-1", "D1", slot="08:00-10:00"),
        _delivery("DEL-2", "D2", slot="08:00-10:00"),
        _delivery("DEL-3", "D3", slot="08:00-10:00", district="Gampaha"),
    ]

    usage = {entry.time_slot: entry for entry in slot_usage(existing, DAY, "Colombo", policy=POLICY)}

    assert usage["08:00-10:00"].booked == 2
    assert usage["08:00-10:00"].remaining == 1
    assert usage["08:00-10:00"].busy_driver_ids == ["D1", "D2", "D3"]
    assert usage["10:00-12:00"].remaining == 3
