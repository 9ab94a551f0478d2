from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid
from datetime import datetime
import uuid
from ..core.db import Base

MATCH_TYPE_MANUAL_SELECTION = "manual_selection"


class BriefMatch(Base):
    __tablename__ = "brief_matches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    brief_id = Column(Uuid, ForeignKey("briefs.id"), index=True, nullable=False)
    manufacturer_id = Column(Uuid, index=True, nullable=False)
    match_type = Column(String(32), nullable=False, default=MATCH_TYPE_MANUAL_SELECTION)
    match_score = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Upsert target: repeated acceptance leaves a single row
        UniqueConstraint("brief_id", "manufacturer_id", name="uq_brief_matches_pair"),
    )
