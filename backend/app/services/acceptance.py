# backend/app/services/acceptance.py
"""
Side-effect cascade for accepting or rejecting a proposal.

Order of writes (each its own store call, no shared transaction):

1. proposal status            -- authoritative; failure raises to the caller
2. brief -> IN_PROGRESS        (accept only)
3. match upsert, score 100     (accept only)
4. MILESTONE execution entry   (accept only)
5. reject open sibling proposals + notify them (accept only, configurable)
6. notify the manufacturer

Steps 2-6 never raise. A failed step is logged and queued in the outbox; the
sweep in ``app.services.outbox`` replays it through the same handler.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping
from uuid import UUID
import logging

from sqlalchemy import select

from ..core.config import get_settings
from ..core.errors import BadRequestError, ConflictError, DuplicateRecordError
from ..models.brief import ACCEPTING_BRIEF_STATUSES, Brief, BriefStatus
from ..models.execution_log import EntryType
from ..models.match import BriefMatch, MATCH_TYPE_MANUAL_SELECTION
from ..models.notification import NotificationType
from ..models.proposal import Proposal, ProposalStatus, allowed_sources
from .directory import ProfileDirectory
from .execution_log import EFFECT_EXECUTION_LOG, replay_execution_log
from ..schemas.profile import ProfileRole
from .notifications import (
    EFFECT_NOTIFICATION,
    EFFECT_PROFILE_NOTIFICATION,
    NotificationEmitter,
    replay_notification,
    replay_profile_notification,
)
from .outbox import Outbox
from .store import RecordStore

logger = logging.getLogger(__name__)

EFFECT_BRIEF_STATUS = "brief_status"
EFFECT_MATCH_UPSERT = "match_upsert"
EFFECT_PROPOSAL_STATUS = "proposal_status"

ACCEPTED_MATCH_SCORE = 100
SYSTEM_AUTHOR = "system"
PROJECT_STARTED_MESSAGE = "Project started! Proposal accepted."

CASCADE_STATUSES = frozenset({ProposalStatus.ACCEPTED, ProposalStatus.REJECTED})


# ---------------------------------------------------------------------------
# Effect handlers (inline and outbox replay)
# ---------------------------------------------------------------------------

def set_brief_status(store: RecordStore, payload: dict[str, Any]) -> None:
    target = BriefStatus(payload["status"])
    updated = store.update(
        Brief,
        UUID(payload["brief_id"]),
        {"status": target},
        Brief.status.in_(list(ACCEPTING_BRIEF_STATUSES | {target})),
    )
    if updated is None:
        # Cancelled or deleted meanwhile; nothing to move
        logger.warning(
            "Brief not in a state to move to %s", target.value,
            extra={"brief_id": payload["brief_id"], "step": EFFECT_BRIEF_STATUS},
        )


def upsert_match(store: RecordStore, payload: dict[str, Any]) -> None:
    store.upsert(
        BriefMatch,
        {
            "brief_id": UUID(payload["brief_id"]),
            "manufacturer_id": UUID(payload["manufacturer_id"]),
            "match_type": payload.get("match_type", MATCH_TYPE_MANUAL_SELECTION),
            "match_score": int(payload.get("match_score", ACCEPTED_MATCH_SCORE)),
        },
        conflict_keys=("brief_id", "manufacturer_id"),
    )


def set_proposal_status(store: RecordStore, payload: dict[str, Any]) -> bool:
    """False when the proposal already left the states the target allows."""
    target = ProposalStatus(payload["status"])
    updated = store.update(
        Proposal,
        UUID(payload["proposal_id"]),
        {"status": target},
        Proposal.status.in_(allowed_sources(target)),
    )
    if updated is None:
        logger.info(
            "Proposal no longer movable to %s", target.value,
            extra={"proposal_id": payload["proposal_id"], "step": EFFECT_PROPOSAL_STATUS},
        )
        return False
    return True


EffectHandler = Callable[[RecordStore, dict[str, Any]], Any]

EFFECT_HANDLERS: dict[str, EffectHandler] = {
    EFFECT_BRIEF_STATUS: set_brief_status,
    EFFECT_MATCH_UPSERT: upsert_match,
    EFFECT_EXECUTION_LOG: replay_execution_log,
    EFFECT_PROPOSAL_STATUS: set_proposal_status,
    EFFECT_NOTIFICATION: replay_notification,
    EFFECT_PROFILE_NOTIFICATION: replay_profile_notification,
}


class AcceptanceOrchestrator:
    def __init__(
        self,
        store: RecordStore,
        directory: ProfileDirectory,
        notifier: NotificationEmitter,
        outbox: Outbox,
        handlers: Mapping[str, EffectHandler] | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.outbox = outbox
        self.handlers = dict(handlers or EFFECT_HANDLERS)
        self.settings = get_settings()

    def apply(
        self,
        proposal: Proposal,
        brief: Brief,
        new_status: ProposalStatus,
        reason: str | None = None,
    ) -> Proposal:
        if new_status not in CASCADE_STATUSES:
            raise ValueError(f"No cascade for status {new_status.value}")

        updated = self._persist_status(proposal, new_status)
        extra = {"brief_id": str(brief.id), "proposal_id": str(proposal.id)}
        logger.info("Proposal %s", new_status.value.lower(), extra={**extra, "step": "proposal_status"})

        if new_status == ProposalStatus.ACCEPTED:
            manufacturer_actor = self._manufacturer_actor(proposal.manufacturer_id, extra)
            self._run_step(
                EFFECT_BRIEF_STATUS,
                {"brief_id": str(brief.id), "status": BriefStatus.IN_PROGRESS.value},
                extra,
            )
            self._run_step(
                EFFECT_MATCH_UPSERT,
                {
                    "brief_id": str(brief.id),
                    "manufacturer_id": str(proposal.manufacturer_id),
                    "match_type": MATCH_TYPE_MANUAL_SELECTION,
                    "match_score": ACCEPTED_MATCH_SCORE,
                },
                extra,
            )
            self._run_step(
                EFFECT_EXECUTION_LOG,
                {
                    "brief_id": str(brief.id),
                    "author_id": manufacturer_actor or SYSTEM_AUTHOR,
                    "content": PROJECT_STARTED_MESSAGE,
                    "entry_type": EntryType.MILESTONE.value,
                },
                extra,
            )
            if self.settings.AUTO_REJECT_SIBLING_PROPOSALS:
                self._reject_siblings(proposal, brief, extra)

            self._notify_manufacturer(
                proposal.manufacturer_id,
                NotificationType.PROPOSAL_ACCEPTED,
                "Proposal Accepted!",
                f'Your proposal for "{brief.title}" has been accepted. Project is now Active.',
                {"brief_id": str(brief.id), "proposal_id": str(proposal.id)},
            )
        else:
            data = {"brief_id": str(brief.id), "proposal_id": str(proposal.id)}
            if reason:
                data["reason"] = reason
            self._notify_manufacturer(
                proposal.manufacturer_id,
                NotificationType.PROPOSAL_REJECTED,
                "Proposal Update",
                f'Your proposal for "{brief.title}" was not selected.',
                data,
            )

        return updated

    # ------------------------------------------------------------------

    def _persist_status(self, proposal: Proposal, new_status: ProposalStatus) -> Proposal:
        criteria = [
            Proposal.status.in_(allowed_sources(new_status)),
            Proposal.deleted_at.is_(None),
        ]
        if new_status == ProposalStatus.ACCEPTED:
            # Brief openness is evaluated by the database in the same UPDATE
            criteria.append(
                Proposal.brief_id.in_(
                    select(Brief.id).where(
                        Brief.status.in_(list(ACCEPTING_BRIEF_STATUSES)),
                        Brief.deleted_at.is_(None),
                    )
                )
            )
        try:
            updated = self.store.update(Proposal, proposal.id, {"status": new_status}, *criteria)
        except DuplicateRecordError as exc:
            raise ConflictError("Another proposal has already been accepted for this brief") from exc
        if updated is None:
            raise BadRequestError(
                f"Proposal can no longer be moved to {new_status.value}"
            )
        return updated

    def _manufacturer_actor(self, manufacturer_id: UUID, extra: dict[str, str]) -> str | None:
        try:
            profile = self.directory.get_manufacturer(manufacturer_id)
        except Exception:
            logger.exception("Manufacturer lookup failed", extra={**extra, "step": "directory"})
            return None
        return profile.user_id if profile else None

    def _run_step(self, effect_type: str, payload: dict[str, Any], extra: dict[str, str]) -> bool:
        try:
            result = self.handlers[effect_type](self.store, payload)
        except Exception:
            logger.exception(
                "Cascade step failed: %s", effect_type,
                extra={**extra, "step": effect_type},
            )
            self.outbox.record(effect_type, payload)
            return False
        # A handler returns False when its write matched nothing
        return result is not False

    def _notify_manufacturer(
        self,
        manufacturer_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> None:
        self.notifier.emit_to_profile(
            self.directory, ProfileRole.MANUFACTURER, manufacturer_id, type, title, message, data
        )

    def _reject_siblings(self, accepted: Proposal, brief: Brief, extra: dict[str, str]) -> None:
        try:
            siblings = self.store.query(
                Proposal,
                Proposal.brief_id == brief.id,
                Proposal.id != accepted.id,
                Proposal.status.in_([ProposalStatus.SUBMITTED, ProposalStatus.UNDER_REVIEW]),
                Proposal.deleted_at.is_(None),
            )
        except Exception:
            logger.exception("Could not load sibling proposals", extra={**extra, "step": "reject_siblings"})
            return

        for sibling in siblings:
            done = self._run_step(
                EFFECT_PROPOSAL_STATUS,
                {"proposal_id": str(sibling.id), "status": ProposalStatus.REJECTED.value},
                {**extra, "proposal_id": str(sibling.id)},
            )
            if not done:
                continue
            self._notify_manufacturer(
                sibling.manufacturer_id,
                NotificationType.PROPOSAL_REJECTED,
                "Proposal Update",
                f'Your proposal for "{brief.title}" was not selected.',
                {"brief_id": str(brief.id), "proposal_id": str(sibling.id)},
            )
