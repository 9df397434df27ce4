"""Order split preview schemas."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import Material, OrderLine
from ..services.slots.timeslots import normalize_slot
from ..services.splitting.splitter import SubDeliveryCandidate


class OrderLineModel(BaseModel):
    material_id: str = ""
    # Lines below one are dropped by the splitter rather than refused here
    quantity: int = 0

    def to_domain(self) -> OrderLine:
        return OrderLine(material_id=self.material_id, quantity=self.quantity)


class MaterialModel(BaseModel):
    material_id: str
    name: str
    category: str
    unit: Optional[str] = None
    sku: Optional[str] = None

    def to_domain(self) -> Material:
        return Material(**self.model_dump())


class PreviewRequest(BaseModel):
    lines: List[OrderLineModel]
    base_date: Optional[dt.date] = Field(default=None, description="Requested delivery date. Defaults to now.")
    base_time: Optional[dt.time] = Field(default=None, description="Start time on base_date. Defaults to the configured day start.")
    materials: Optional[List[MaterialModel]] = Field(
        default=None,
        description="Inline catalog. Fetched from the registry when omitted.",
    )


class PreviewItemModel(BaseModel):
    material_id: str
    name: str
    category: str
    unit: Optional[str] = None
    sku: Optional[str] = None
    requested_qty: int


class SubDeliveryCandidateModel(BaseModel):
    sequence_number: int
    category: str
    items: List[PreviewItemModel]
    total_items: int
    priority_rank: int
    proposed_date: dt.date
    proposed_time: str
    estimated_duration_minutes: int

    @classmethod
    def from_domain(cls, candidate: SubDeliveryCandidate) -> SubDeliveryCandidateModel:
        return cls(
            sequence_number=candidate.sequence_number,
            category=candidate.category,
            items=[PreviewItemModel(**asdict(item)) for item in candidate.items],
            total_items=candidate.total_items,
            priority_rank=candidate.priority_rank,
            proposed_date=candidate.proposed_date,
            proposed_time=candidate.proposed_time.strftime("%H:%M"),
            estimated_duration_minutes=candidate.estimated_duration_minutes,
        )


class PreviewResponse(BaseModel):
    candidates: List[SubDeliveryCandidateModel]
    total_items: int


class CandidateAssignment(BaseModel):
    sequence_number: int = Field(..., ge=1)
    time_slot: str
    driver_id: str
    delivery_date: Optional[dt.date] = Field(default=None, description="Overrides the proposed date.")

    @field_validator("time_slot")
    @classmethod
    def _check_slot(cls, value: str) -> str:
        return normalize_slot(value)


class PreviewConfirmRequest(PreviewRequest):
    order_id: str = Field(..., min_length=1)
    customer: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    assignments: List[CandidateAssignment]


class ConfirmationModel(BaseModel):
    sequence_number: int
    category: str
    accepted: bool
    reason: str
    message: str
    delivery_id: Optional[str] = None


class PreviewConfirmResponse(BaseModel):
    results: List[ConfirmationModel]
