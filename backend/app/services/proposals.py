# backend/app/services/proposals.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID
import logging

from ..core.config import get_settings
from ..core.errors import (
    BadRequestError,
    ConflictError,
    DuplicateRecordError,
    ForbiddenError,
    NotFoundError,
)
from ..models.brief import ACCEPTING_BRIEF_STATUSES, Brief, BriefStatus
from ..models.match import BriefMatch
from ..models.notification import NotificationType
from ..models.proposal import (
    PROPOSAL_TRANSITIONS,
    Proposal,
    ProposalStatus,
    TERMINAL_PROPOSAL_STATUSES,
    allowed_sources,
)
from ..schemas.brief import BriefSnapshot
from ..schemas.profile import ManufacturerSnapshot, ProfileRole
from ..schemas.proposal import (
    ManufacturerStats,
    ProposalCreate,
    ProposalWithBrief,
    ProposalWithManufacturer,
)
from ..schemas.common import parse_input
from .acceptance import AcceptanceOrchestrator, CASCADE_STATUSES
from .directory import ProfileDirectory
from .notifications import NotificationEmitter
from .store import RecordStore

logger = logging.getLogger(__name__)

NOT_ACCEPTING_MESSAGE = "This brief is not accepting proposals"
DUPLICATE_MESSAGE = "You have already submitted a proposal for this brief"


def _active_pair(brief_id: UUID, manufacturer_id: UUID) -> list:
    return [
        Proposal.brief_id == brief_id,
        Proposal.manufacturer_id == manufacturer_id,
        Proposal.status != ProposalStatus.WITHDRAWN,
        Proposal.deleted_at.is_(None),
    ]


class ProposalService:
    def __init__(
        self,
        store: RecordStore,
        directory: ProfileDirectory,
        notifier: NotificationEmitter,
        orchestrator: AcceptanceOrchestrator,
    ) -> None:
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.orchestrator = orchestrator
        self.settings = get_settings()

    def _load(self, proposal_id: UUID) -> Proposal:
        proposal = self.store.first(Proposal, Proposal.id == proposal_id, Proposal.deleted_at.is_(None))
        if proposal is None:
            raise NotFoundError.for_resource("Proposal")
        return proposal

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def create(self, manufacturer_id: UUID, terms: ProposalCreate | dict) -> Proposal:
        data = parse_input(ProposalCreate, terms)

        brief = self.store.first(Brief, Brief.id == data.brief_id, Brief.deleted_at.is_(None))
        if brief is None:
            raise NotFoundError.for_resource("Brief")
        if self.store.first(Proposal, *_active_pair(brief.id, manufacturer_id)) is not None:
            raise ConflictError(DUPLICATE_MESSAGE)

        currency = data.currency
        if "currency" not in data.model_fields_set:
            currency = self.settings.DEFAULT_CURRENCY

        now = datetime.utcnow()
        try:
            # Brief row is locked and re-checked in the insert's transaction
            proposal = self.store.insert_guarded(
                Proposal,
                {
                    "brief_id": brief.id,
                    "manufacturer_id": manufacturer_id,
                    "price": data.price,
                    "currency": currency,
                    "delivery_timeline": data.delivery_timeline,
                    "target_delivery_date": data.target_delivery_date,
                    "details": data.details.model_dump(mode="json", exclude_none=True),
                    "attachments": list(data.attachments),
                    "status": ProposalStatus.SUBMITTED,
                    "counter_offer_history": [],
                    "submitted_at": now,
                },
                Brief,
                [
                    Brief.id == brief.id,
                    Brief.status == BriefStatus.OPEN,
                    Brief.deleted_at.is_(None),
                ],
            )
        except DuplicateRecordError as exc:
            raise ConflictError(DUPLICATE_MESSAGE) from exc
        if proposal is None:
            raise BadRequestError(NOT_ACCEPTING_MESSAGE)

        logger.info(
            "Proposal submitted",
            extra={"brief_id": str(brief.id), "proposal_id": str(proposal.id), "step": "proposal_create"},
        )

        self.notifier.emit_to_profile(
            self.directory,
            ProfileRole.BRAND,
            brief.brand_id,
            NotificationType.PROPOSAL_RECEIVED,
            "New Proposal Received",
            f'A manufacturer has submitted a proposal for "{brief.title}"',
            {"brief_id": str(brief.id), "proposal_id": str(proposal.id)},
        )
        return proposal

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_for_brief(self, brief_id: UUID, caller_brand_id: UUID) -> list[ProposalWithManufacturer]:
        brief = self.store.first(Brief, Brief.id == brief_id, Brief.deleted_at.is_(None))
        if brief is None:
            raise NotFoundError.for_resource("Brief")
        if brief.brand_id != caller_brand_id:
            raise ForbiddenError("You do not have access to this brief")

        proposals = self.store.query(
            Proposal,
            Proposal.brief_id == brief.id,
            Proposal.deleted_at.is_(None),
            order_by=(Proposal.created_at.desc(), Proposal.id.asc()),
        )
        profiles = self.directory.get_manufacturers(p.manufacturer_id for p in proposals)

        results = []
        for p in proposals:
            item = ProposalWithManufacturer.model_validate(p)
            profile = profiles.get(p.manufacturer_id)
            if profile is not None:
                item.manufacturer = ManufacturerSnapshot.model_validate(profile, from_attributes=True)
            results.append(item)
        return results

    def list_mine(self, manufacturer_id: UUID) -> list[ProposalWithBrief]:
        proposals = self.store.query(
            Proposal,
            Proposal.manufacturer_id == manufacturer_id,
            Proposal.deleted_at.is_(None),
            order_by=(Proposal.created_at.desc(), Proposal.id.asc()),
        )
        brief_ids = {p.brief_id for p in proposals}
        briefs = {
            b.id: b
            for b in (self.store.query(Brief, Brief.id.in_(brief_ids)) if brief_ids else [])
        }

        results = []
        for p in proposals:
            item = ProposalWithBrief.model_validate(p)
            brief = briefs.get(p.brief_id)
            if brief is not None:
                item.brief = BriefSnapshot.model_validate(brief)
            results.append(item)
        return results

    def stats(self, manufacturer_id: UUID) -> ManufacturerStats:
        """Manufacturer dashboard counters; ``open_briefs`` is the marketplace size."""
        mine = [Proposal.manufacturer_id == manufacturer_id, Proposal.deleted_at.is_(None)]
        scores = [
            m.match_score
            for m in self.store.query(BriefMatch, BriefMatch.manufacturer_id == manufacturer_id)
        ]
        return ManufacturerStats(
            open_briefs=self.store.count(
                Brief, Brief.status == BriefStatus.OPEN, Brief.deleted_at.is_(None)
            ),
            proposals_sent=self.store.count(Proposal, *mine),
            pending_proposals=self.store.count(
                Proposal,
                *mine,
                Proposal.status.in_([ProposalStatus.SUBMITTED, ProposalStatus.UNDER_REVIEW]),
            ),
            active_matches=len(scores),
            average_match_score=round(sum(scores) / len(scores)) if scores else 0,
        )

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def update_status(
        self,
        proposal_id: UUID,
        caller_brand_id: UUID,
        new_status: ProposalStatus,
        reason: str | None = None,
    ) -> Proposal:
        new_status = ProposalStatus(new_status)
        proposal = self._load(proposal_id)
        brief = self.store.first(Brief, Brief.id == proposal.brief_id)
        if brief is None:
            raise NotFoundError.for_resource("Brief")
        if brief.brand_id != caller_brand_id:
            raise ForbiddenError("You do not have access to this proposal")

        if new_status == ProposalStatus.COUNTER_OFFERED:
            raise BadRequestError("Counter offers are not supported")
        if new_status == ProposalStatus.WITHDRAWN:
            raise BadRequestError("Only the submitting manufacturer can withdraw a proposal")
        if new_status not in PROPOSAL_TRANSITIONS[proposal.status]:
            raise BadRequestError(
                f"Cannot change proposal from {proposal.status.value} to {new_status.value}"
            )
        if new_status == ProposalStatus.ACCEPTED and (
            brief.deleted_at is not None or brief.status not in ACCEPTING_BRIEF_STATUSES
        ):
            raise BadRequestError("This brief is no longer accepting proposals")

        if new_status in CASCADE_STATUSES:
            return self.orchestrator.apply(proposal, brief, new_status, reason=reason)

        updated = self.store.update(
            Proposal,
            proposal.id,
            {"status": new_status},
            Proposal.status.in_(allowed_sources(new_status)),
            Proposal.deleted_at.is_(None),
        )
        if updated is None:
            raise BadRequestError(f"Proposal can no longer be moved to {new_status.value}")
        logger.info(
            "Proposal %s -> %s", proposal.status.value, new_status.value,
            extra={"brief_id": str(brief.id), "proposal_id": str(proposal.id), "step": "proposal_status"},
        )
        return updated

    def withdraw(self, proposal_id: UUID, manufacturer_id: UUID) -> Proposal:
        proposal = self._load(proposal_id)
        if proposal.manufacturer_id != manufacturer_id:
            raise ForbiddenError("You can only withdraw your own proposals")
        if proposal.status in TERMINAL_PROPOSAL_STATUSES:
            raise BadRequestError("Proposal can no longer be withdrawn")

        updated = self.store.update(
            Proposal,
            proposal.id,
            {"status": ProposalStatus.WITHDRAWN},
            Proposal.status.in_(allowed_sources(ProposalStatus.WITHDRAWN)),
            Proposal.deleted_at.is_(None),
        )
        if updated is None:
            raise BadRequestError("Proposal can no longer be withdrawn")
        logger.info(
            "Proposal withdrawn",
            extra={"brief_id": str(proposal.brief_id), "proposal_id": str(proposal.id), "step": "proposal_withdraw"},
        )
        return updated
