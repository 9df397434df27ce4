"""Driver availability endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.deliveries import (
    DriverAvailabilityModel,
    DriverAvailabilityRequest,
    DriverAvailabilityResponse,
    DriverModel,
)
from ...services.registry.client import RegistryClient
from ...services.slots.allocator import default_driver
from ...services.slots.service import DeliveryScheduler
from ..dependencies import get_registry_client, get_scheduler

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.post("/availability", response_model=DriverAvailabilityResponse)
def driver_availability(
    payload: DriverAvailabilityRequest,
    scheduler: DeliveryScheduler = Depends(get_scheduler),
    registry: RegistryClient | None = Depends(get_registry_client),
) -> DriverAvailabilityResponse:
    if payload.drivers is not None:
        drivers = [driver.to_domain() for driver in payload.drivers]
    elif registry is not None:
        try:
            drivers = registry.fetch_drivers(active_only=False)
        except Exception as exc:
            logging.exception(f"Error fetching drivers from registry: {exc}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to fetch drivers: {str(exc)}",
            ) from exc
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No drivers supplied and no driver registry configured.",
        )

    board = scheduler.driver_board(drivers, payload.delivery_date, payload.time_slot)
    chosen = default_driver(board, payload.selected_driver_id)
    return DriverAvailabilityResponse(
        delivery_date=payload.delivery_date,
        time_slot=payload.time_slot,
        default_driver_id=chosen.driver_id if chosen else None,
        drivers=[
            DriverAvailabilityModel(
                driver=DriverModel(
                    driver_id=entry.driver.driver_id,
                    name=entry.driver.name,
                    phone=entry.driver.phone,
                    vehicle=entry.driver.vehicle,
                    active=entry.driver.active,
                    current_location=entry.driver.current_location,
                    total_deliveries=entry.driver.total_deliveries,
                    rating=entry.driver.rating,
                ),
                available=entry.available,
            )
            for entry in board
        ],
    )
