"""
PendingEffect model: the outbox for cascade side effects.

When a best-effort step of a proposal status change fails (brief status,
match upsert, execution log entry, notification), the effect is written here
and replayed later by the Celery sweep in ``app.services.outbox``.

Lifecycle:
1. PENDING - waiting for (another) replay attempt at ``next_attempt_at``
2. DELIVERED - replay succeeded
3. DEAD - gave up after OUTBOX_MAX_ATTEMPTS
"""
from sqlalchemy import Column, String, Text, JSON, DateTime, Integer, Index, Uuid
from datetime import datetime
import uuid

from ..core.db import Base


class EffectStatus:
    """Status values for PendingEffect."""
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    DEAD = "DEAD"


class PendingEffect(Base):
    __tablename__ = "pending_effects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    effect_type = Column(String(64), nullable=False)  # brief_status, match_upsert, execution_log, ...
    payload = Column(JSON, nullable=False)
    status = Column(String(16), nullable=False, default=EffectStatus.PENDING)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    next_attempt_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    delivered_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_pending_effects_due", "status", "next_attempt_at"),
    )
