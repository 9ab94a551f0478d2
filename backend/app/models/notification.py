from sqlalchemy import Column, String, Text, JSON, Enum, DateTime, Boolean, Uuid
from datetime import datetime
import uuid
import enum
from ..core.db import Base


class NotificationType(str, enum.Enum):
    PROPOSAL_RECEIVED = "PROPOSAL_RECEIVED"
    PROPOSAL_ACCEPTED = "PROPOSAL_ACCEPTED"
    PROPOSAL_REJECTED = "PROPOSAL_REJECTED"
    MESSAGE_RECEIVED = "MESSAGE_RECEIVED"
    BRIEF_MATCHED = "BRIEF_MATCHED"
    PROJECT_UPDATE = "PROJECT_UPDATE"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(String(64), index=True, nullable=False)  # actor id
    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)  # deep-link payload, e.g. {brief_id, proposal_id}
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
