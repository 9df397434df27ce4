"""Delivery scheduling endpoints."""

from __future__ import annotations

import datetime as dt
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...models.domain import DeliveryStatus
from ...schemas.deliveries import (
    AvailabilityRequest,
    AvailabilityResponse,
    DeliveryCreateRequest,
    DeliveryModel,
    DeliveryUpdateRequest,
    SlotUsageModel,
    StatusUpdateRequest,
)
from ...services.slots.allocator import SlotRequest
from ...services.slots.errors import DeliveryNotFoundError, SchedulingError, SlotUnavailableError
from ...services.slots.service import DeliveryChanges, DeliveryDraft, DeliveryScheduler
from ..dependencies import get_scheduler

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, DeliveryNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, SlotUnavailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": exc.outcome.value, "message": exc.outcome.message},
        )
    if isinstance(exc, SchedulingError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logging.exception(f"Unexpected scheduling failure: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to process delivery request: {str(exc)}",
    )


@router.get("", response_model=list[DeliveryModel])
def list_deliveries(
    delivery_date: dt.date | None = Query(default=None, alias="date", description="Filter by calendar date"),
    district: str | None = Query(default=None, description="Filter by district"),
    driver_id: str | None = Query(default=None, description="Filter by driver"),
    status_filter: DeliveryStatus | None = Query(default=None, alias="status", description="Filter by status"),
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> list[DeliveryModel]:
    deliveries = scheduler.list_deliveries(
        on_date=delivery_date, district=district, driver_id=driver_id, status=status_filter
    )
    return [DeliveryModel.from_domain(delivery) for delivery in deliveries]


@router.post("", response_model=DeliveryModel, status_code=status.HTTP_201_CREATED)
def create_delivery(
    payload: DeliveryCreateRequest,
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> DeliveryModel:
    draft = DeliveryDraft(
        order_id=payload.order_id,
        customer=payload.customer,
        address=payload.address,
        district=payload.district,
        date=payload.delivery_date,
        time_slot=payload.time_slot,
        driver_id=payload.driver_id,
        notes=payload.notes,
    )
    try:
        return DeliveryModel.from_domain(scheduler.schedule(draft))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.post("/availability", response_model=AvailabilityResponse)
def check_availability(
    payload: AvailabilityRequest,
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> AvailabilityResponse:
    request = SlotRequest(
        date=payload.delivery_date,
        time_slot=payload.time_slot,
        district=payload.district,
        driver_id=payload.driver_id,
    )
    outcome = scheduler.check(request, exclude_id=payload.exclude_id)
    return AvailabilityResponse(accepted=outcome.accepted, reason=outcome.value, message=outcome.message)


@router.get("/slots", response_model=list[SlotUsageModel])
def get_slot_usage(
    delivery_date: dt.date = Query(..., alias="date", description="Calendar date"),
    district: str = Query(..., description="District to report capacity for"),
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> list[SlotUsageModel]:
    return [
        SlotUsageModel(
            time_slot=usage.time_slot,
            booked=usage.booked,
            remaining=usage.remaining,
            busy_driver_ids=usage.busy_driver_ids,
        )
        for usage in scheduler.slot_board(delivery_date, district)
    ]


@router.put("/{delivery_id}", response_model=DeliveryModel)
def update_delivery(
    delivery_id: str,
    payload: DeliveryUpdateRequest,
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> DeliveryModel:
    changes = DeliveryChanges(
        customer=payload.customer,
        address=payload.address,
        district=payload.district,
        date=payload.delivery_date,
        time_slot=payload.time_slot,
        driver_id=payload.driver_id,
        notes=payload.notes,
    )
    try:
        return DeliveryModel.from_domain(scheduler.reschedule(delivery_id, changes))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.patch("/{delivery_id}/status", response_model=DeliveryModel)
def update_delivery_status(
    delivery_id: str,
    payload: StatusUpdateRequest,
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> DeliveryModel:
    try:
        return DeliveryModel.from_domain(scheduler.update_status(delivery_id, payload.status))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.post("/{delivery_id}/cancel", response_model=DeliveryModel)
def cancel_delivery(delivery_id: str, scheduler: DeliveryScheduler = Depends(get_scheduler)) -> DeliveryModel:
    try:
        return DeliveryModel.from_domain(scheduler.cancel(delivery_id))
    except Exception as exc:
        raise _to_http_error(exc) from exc


@router.delete("/{delivery_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_delivery(delivery_id: str, scheduler: DeliveryScheduler = Depends(get_scheduler)) -> Response:
    try:
        scheduler.remove(delivery_id)
    except Exception as exc:
        raise _to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
