from __future__ import annotations

import enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.profile import VerificationStatus


class ProfileRole(str, enum.Enum):
    BRAND = "brand"
    MANUFACTURER = "manufacturer"


class Capability(BaseModel):
    category: str
    subcategories: list[str] = Field(default_factory=list)


class BrandProfileView(BaseModel):
    id: UUID
    user_id: str
    company_name: str
    logo_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ManufacturerProfileView(BaseModel):
    id: UUID
    user_id: str
    company_name: str
    logo_url: str | None = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    capabilities: list[Capability] = Field(default_factory=list)
    factory_location: str | None = None
    min_order_quantity: int | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def categories(self) -> list[str]:
        return [c.category for c in self.capabilities if c.category]


class ManufacturerSnapshot(BaseModel):
    """Public, read-only slice of a manufacturer profile shown next to proposals."""
    id: UUID
    company_name: str
    logo_url: str | None = None
    verification_status: VerificationStatus

    model_config = ConfigDict(from_attributes=True)
