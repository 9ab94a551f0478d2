from sqlalchemy import Column, String, Text, JSON, Enum, DateTime, Date, Boolean, Numeric, Uuid
from datetime import datetime
import uuid
import enum
from ..core.db import Base


class BriefStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    MATCHED = "MATCHED"  # reserved; accepted like OPEN, nothing transitions into it yet
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_BRIEF_STATUSES = frozenset({BriefStatus.COMPLETED, BriefStatus.CANCELLED})

# Brief states in which a proposal may still be accepted
ACCEPTING_BRIEF_STATUSES = frozenset({BriefStatus.OPEN, BriefStatus.MATCHED})


class Brief(Base):
    __tablename__ = "briefs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    brand_id = Column(Uuid, index=True, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(JSON, nullable=False)  # {product_type, quantity, specifications, ...}
    budget_min = Column(Numeric(14, 2), nullable=False)
    budget_max = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    category = Column(String(100), index=True, nullable=True)
    timeline = Column(String(255), nullable=False)
    target_delivery_date = Column(Date, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    status = Column(Enum(BriefStatus), nullable=False, default=BriefStatus.DRAFT, index=True)
    ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
