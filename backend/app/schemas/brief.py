# backend/app/schemas/brief.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.brief import BriefStatus

MIN_TITLE_LEN = 5
MAX_TITLE_LEN = 200
MIN_DESCRIPTION_LEN = 20
MAX_DESCRIPTION_LEN = 5000
MAX_ATTACHMENTS = 10


def _normalize_currency(v: str) -> str:
    v = v.strip().upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("currency must be a 3-letter code")
    return v


class Requirements(BaseModel):
    product_type: str = Field(min_length=2, max_length=200)
    quantity: int = Field(gt=0)
    specifications: list[str] = Field(default_factory=list)
    quality_standards: list[str] | None = None
    packaging_notes: str | None = Field(default=None, max_length=500)
    additional_notes: str | None = Field(default=None, max_length=2000)

    @field_validator("specifications")
    @classmethod
    def _strip_specifications(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s and s.strip()]


class RequirementsPatch(BaseModel):
    """Partial requirements; merged onto the stored ones and revalidated."""
    product_type: str | None = None
    quantity: int | None = None
    specifications: list[str] | None = None
    quality_standards: list[str] | None = None
    packaging_notes: str | None = None
    additional_notes: str | None = None


class Budget(BaseModel):
    min: Decimal = Field(gt=0)
    max: Decimal = Field(gt=0)
    currency: str = "USD"

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        return _normalize_currency(v)

    @model_validator(mode="after")
    def _ordered(self):
        if self.max < self.min:
            raise ValueError("budget max must be greater than or equal to min")
        return self


class BriefCreate(BaseModel):
    title: str = Field(min_length=MIN_TITLE_LEN, max_length=MAX_TITLE_LEN)
    description: str = Field(min_length=MIN_DESCRIPTION_LEN, max_length=MAX_DESCRIPTION_LEN)
    requirements: Requirements
    budget: Budget
    category: str | None = Field(default=None, min_length=2, max_length=100)
    timeline: str = Field(min_length=1, max_length=255)
    target_delivery_date: date | None = None
    attachments: list[str] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    @field_validator("title", "description", "timeline", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class BriefUpdate(BaseModel):
    """Every field optional; only fields present in the payload are applied."""
    title: str | None = Field(default=None, min_length=MIN_TITLE_LEN, max_length=MAX_TITLE_LEN)
    description: str | None = Field(
        default=None, min_length=MIN_DESCRIPTION_LEN, max_length=MAX_DESCRIPTION_LEN
    )
    requirements: RequirementsPatch | None = None
    budget: Budget | None = None
    category: str | None = Field(default=None, min_length=2, max_length=100)
    timeline: str | None = Field(default=None, min_length=1, max_length=255)
    target_delivery_date: date | None = None
    attachments: list[str] | None = Field(default=None, max_length=MAX_ATTACHMENTS)

    model_config = ConfigDict(extra="forbid")


class BriefQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)
    status: BriefStatus | None = None
    category: str | None = None
    search: str | None = None
    sort_by: Literal["created_at", "updated_at", "title"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class BriefGenerateRequest(BaseModel):
    product_type: str = Field(min_length=2, max_length=200)
    quantity: int = Field(gt=0)
    target_market: str | None = None
    budget_range: str | None = None
    timeline: str | None = None
    additional_details: str | None = Field(default=None, max_length=4000)


class BriefOut(BaseModel):
    id: UUID
    brand_id: UUID
    title: str
    description: str
    requirements: dict
    budget_min: Decimal
    budget_max: Decimal
    currency: str
    category: str | None = None
    timeline: str
    target_delivery_date: date | None = None
    attachments: list[str] = Field(default_factory=list)
    status: BriefStatus
    ai_generated: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BriefSnapshot(BaseModel):
    id: UUID
    title: str
    status: BriefStatus

    model_config = ConfigDict(from_attributes=True)


class BrandStats(BaseModel):
    total_briefs: int
    open_briefs: int
    pending_proposals: int
    accepted_proposals: int
