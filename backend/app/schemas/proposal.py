# backend/app/schemas/proposal.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.proposal import ProposalStatus
from .brief import BriefSnapshot
from .profile import ManufacturerSnapshot

MAX_ATTACHMENTS = 10
MAX_NOTES_LEN = 4000


class ProposalDetails(BaseModel):
    """
    Structured proposal body.

    ``kind`` tags the layout so stored rows can be told apart if other
    layouts are ever added. Known fields are typed; anything else a
    manufacturer wants to say goes into ``notes`` or the string-only ``extra``.
    """
    kind: Literal["quote"] = "quote"
    notes: str | None = Field(default=None, max_length=MAX_NOTES_LEN)
    min_order_quantity: int | None = Field(default=None, gt=0)
    unit_price: Decimal | None = Field(default=None, gt=0)
    lead_time_days: int | None = Field(default=None, gt=0)
    sample_available: bool | None = None
    payment_terms: str | None = Field(default=None, max_length=500)
    extra: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ProposalCreate(BaseModel):
    brief_id: UUID
    price: Decimal = Field(gt=0)
    currency: str = "USD"
    delivery_timeline: str = Field(min_length=1, max_length=255)
    target_delivery_date: date | None = None
    details: ProposalDetails = Field(default_factory=ProposalDetails)
    attachments: list[str] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return v

    @field_validator("delivery_timeline", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ProposalStatusUpdate(BaseModel):
    status: ProposalStatus
    rejection_reason: str | None = Field(default=None, max_length=1000)


class ProposalOut(BaseModel):
    id: UUID
    brief_id: UUID
    manufacturer_id: UUID
    price: Decimal
    currency: str
    delivery_timeline: str
    target_delivery_date: date | None = None
    details: dict = Field(default_factory=dict)
    attachments: list[str] = Field(default_factory=list)
    status: ProposalStatus
    submitted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProposalWithManufacturer(ProposalOut):
    manufacturer: ManufacturerSnapshot | None = None


class ProposalWithBrief(ProposalOut):
    brief: BriefSnapshot | None = None


class ManufacturerStats(BaseModel):
    open_briefs: int
    proposals_sent: int
    pending_proposals: int
    active_matches: int
    average_match_score: int
