from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from ..models.profile import VerificationStatus
from .brief import BriefOut


class ManufacturerMatch(BaseModel):
    manufacturer_id: UUID
    company_name: str
    match_score: int
    match_reasons: list[str]
    verification_status: VerificationStatus
    location: str | None = None
    min_order_quantity: int | None = None


class BriefMatchResult(BaseModel):
    brief_id: UUID
    title: str
    match_score: int
    match_reasons: list[str]
    brief: BriefOut


class ManufacturerRecommendations(BaseModel):
    matches: list[ManufacturerMatch] = Field(default_factory=list)
    count: int = 0


class BriefRecommendations(BaseModel):
    matches: list[BriefMatchResult] = Field(default_factory=list)
    count: int = 0
