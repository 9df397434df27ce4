"""Order split preview and confirmation endpoints."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from ...schemas.preview import (
    ConfirmationModel,
    PreviewConfirmRequest,
    PreviewConfirmResponse,
    PreviewRequest,
    PreviewResponse,
    SubDeliveryCandidateModel,
)
from ...services.policy import SplitPolicy
from ...services.registry.client import RegistryClient
from ...services.slots.service import DeliveryDraft, DeliveryScheduler, PreviewBooking
from ...services.splitting.catalog import MaterialsCatalog
from ...services.splitting.splitter import SubDeliveryCandidate, build_preview
from ..dependencies import get_registry_client, get_scheduler, get_split_policy

router = APIRouter(prefix="/orders", tags=["orders"])


def _resolve_catalog(payload: PreviewRequest, registry: RegistryClient | None) -> MaterialsCatalog:
    if payload.materials is not None:
        return MaterialsCatalog(material.to_domain() for material in payload.materials)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No materials supplied and no materials registry configured.",
        )
    try:
        return registry.fetch_materials()
    except Exception as exc:
        logging.exception(f"Error fetching materials from registry: {exc}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch materials: {str(exc)}",
        ) from exc


def _run_preview(
    payload: PreviewRequest, registry: RegistryClient | None, policy: SplitPolicy
) -> list[SubDeliveryCandidate]:
    catalog = _resolve_catalog(payload, registry)
    if payload.base_date is None:
        base = datetime.now().replace(second=0, microsecond=0)
    elif payload.base_time is not None:
        base = datetime.combine(payload.base_date, payload.base_time)
    else:
        base = payload.base_date
    return build_preview([line.to_domain() for line in payload.lines], catalog, base, policy=policy)


@router.post("/preview", response_model=PreviewResponse, status_code=status.HTTP_200_OK)
def preview_order(
    payload: PreviewRequest,
    registry: RegistryClient | None = Depends(get_registry_client),
    policy: SplitPolicy = Depends(get_split_policy),
) -> PreviewResponse:
    candidates = _run_preview(payload, registry, policy)
    return PreviewResponse(
        candidates=[SubDeliveryCandidateModel.from_domain(candidate) for candidate in candidates],
        total_items=sum(candidate.total_items for candidate in candidates),
    )


@router.post("/preview/confirm", response_model=PreviewConfirmResponse, status_code=status.HTTP_200_OK)
def confirm_order_preview(
    payload: PreviewConfirmRequest,
    registry: RegistryClient | None = Depends(get_registry_client),
    policy: SplitPolicy = Depends(get_split_policy),
    scheduler: DeliveryScheduler = Depends(get_scheduler),
) -> PreviewConfirmResponse:
    candidates = {candidate.sequence_number: candidate for candidate in _run_preview(payload, registry, policy)}
    unknown = [a.sequence_number for a in payload.assignments if a.sequence_number not in candidates]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown sub-delivery numbers: {', '.join(str(number) for number in unknown)}",
        )

    bookings = []
    for assignment in payload.assignments:
        candidate = candidates[assignment.sequence_number]
        request = candidate.as_slot_request(payload.district, assignment.driver_id, assignment.time_slot)
        bookings.append(
            PreviewBooking(
                sequence_number=candidate.sequence_number,
                category=candidate.category,
                draft=DeliveryDraft(
                    order_id=payload.order_id,
                    customer=payload.customer,
                    address=payload.address,
                    district=request.district,
                    date=assignment.delivery_date or request.date,
                    time_slot=request.time_slot,
                    driver_id=request.driver_id,
                    notes=f"{candidate.category}: {candidate.total_items} items, ~{candidate.estimated_duration_minutes} min",
                ),
            )
        )

    results = scheduler.confirm_preview(bookings)
    return PreviewConfirmResponse(
        results=[
            ConfirmationModel(
                sequence_number=result.sequence_number,
                category=result.category,
                accepted=result.outcome.accepted,
                reason=result.outcome.value,
                message=result.outcome.message,
                delivery_id=result.delivery.delivery_id if result.delivery else None,
            )
            for result in results
        ]
    )
