"""
Proposal model: one manufacturer's offer against one brief.

Two partial unique indexes back the workflow rules at the store level so
concurrent callers cannot slip past the application checks:

- ``uq_proposals_active_pair``: one non-withdrawn proposal per
  (brief, manufacturer).
- ``uq_proposals_accepted_brief``: at most one ACCEPTED proposal per brief.
"""
from sqlalchemy import Column, String, JSON, Enum, DateTime, Date, Numeric, ForeignKey, Index, Uuid, text
from datetime import datetime
import uuid
import enum
from ..core.db import Base


class ProposalStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    COUNTER_OFFERED = "COUNTER_OFFERED"  # reserved, no transition logic
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


TERMINAL_PROPOSAL_STATUSES = frozenset(
    {ProposalStatus.ACCEPTED, ProposalStatus.REJECTED, ProposalStatus.WITHDRAWN}
)

# Allowed next states. Review is optional; WITHDRAWN is manufacturer-only.
PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.SUBMITTED: frozenset(
        {
            ProposalStatus.UNDER_REVIEW,
            ProposalStatus.ACCEPTED,
            ProposalStatus.REJECTED,
            ProposalStatus.WITHDRAWN,
        }
    ),
    ProposalStatus.UNDER_REVIEW: frozenset(
        {ProposalStatus.ACCEPTED, ProposalStatus.REJECTED, ProposalStatus.WITHDRAWN}
    ),
    ProposalStatus.COUNTER_OFFERED: frozenset({ProposalStatus.WITHDRAWN}),
    ProposalStatus.ACCEPTED: frozenset(),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.WITHDRAWN: frozenset(),
}


def allowed_sources(target: ProposalStatus) -> list[ProposalStatus]:
    """Statuses from which ``target`` is reachable."""
    return [src for src, targets in PROPOSAL_TRANSITIONS.items() if target in targets]


_ACTIVE_PAIR_PREDICATE = "status <> 'WITHDRAWN' AND deleted_at IS NULL"
_ACCEPTED_PREDICATE = "status = 'ACCEPTED'"


class Proposal(Base):
    __tablename__ = "proposals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    brief_id = Column(Uuid, ForeignKey("briefs.id"), index=True, nullable=False)
    manufacturer_id = Column(Uuid, index=True, nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    delivery_timeline = Column(String(255), nullable=False)
    target_delivery_date = Column(Date, nullable=True)
    details = Column(JSON, nullable=False, default=dict)  # ProposalDetails, tagged by "kind"
    attachments = Column(JSON, nullable=False, default=list)  # opaque file-storage refs
    status = Column(Enum(ProposalStatus), nullable=False, default=ProposalStatus.SUBMITTED)
    counter_offer_history = Column(JSON, nullable=False, default=list)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "uq_proposals_active_pair",
            "brief_id",
            "manufacturer_id",
            unique=True,
            postgresql_where=text(_ACTIVE_PAIR_PREDICATE),
            sqlite_where=text(_ACTIVE_PAIR_PREDICATE),
        ),
        Index(
            "uq_proposals_accepted_brief",
            "brief_id",
            unique=True,
            postgresql_where=text(_ACCEPTED_PREDICATE),
            sqlite_where=text(_ACCEPTED_PREDICATE),
        ),
    )
