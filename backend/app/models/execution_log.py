from sqlalchemy import Column, String, Text, Enum, DateTime, ForeignKey, Uuid
from datetime import datetime
import uuid
import enum
from ..core.db import Base


class EntryType(str, enum.Enum):
    MILESTONE = "MILESTONE"
    UPDATE = "UPDATE"
    ISSUE = "ISSUE"


class ExecutionLogEntry(Base):
    __tablename__ = "execution_log_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    brief_id = Column(Uuid, ForeignKey("briefs.id"), index=True, nullable=False)
    author_id = Column(String(64), nullable=False)   # actor id
    content = Column(Text, nullable=False)
    entry_type = Column(Enum(EntryType), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
