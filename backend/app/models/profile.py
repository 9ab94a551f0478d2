from sqlalchemy import Column, String, JSON, Enum, DateTime, Integer, Uuid
from datetime import datetime
import uuid
import enum
from ..core.db import Base


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class BrandProfile(Base):
    __tablename__ = "brand_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), unique=True, index=True, nullable=False)  # opaque actor id
    company_name = Column(String(200), nullable=False)
    logo_url = Column(String(2048), nullable=True)
    industry = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ManufacturerProfile(Base):
    __tablename__ = "manufacturer_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), unique=True, index=True, nullable=False)
    company_name = Column(String(200), nullable=False)
    logo_url = Column(String(2048), nullable=True)
    verification_status = Column(
        Enum(VerificationStatus),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )
    capabilities = Column(JSON, nullable=False, default=list)  # [{"category": "Apparel", "subcategories": [...]}]
    factory_location = Column(String(200), nullable=True)
    min_order_quantity = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
