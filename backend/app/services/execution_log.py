# backend/app/services/execution_log.py
from __future__ import annotations

from typing import Any
from uuid import UUID
import logging

from ..core.errors import BadRequestError, ForbiddenError, NotFoundError
from ..models.brief import Brief, BriefStatus
from ..models.execution_log import EntryType, ExecutionLogEntry
from ..models.notification import NotificationType
from ..models.proposal import Proposal, ProposalStatus
from .directory import ProfileDirectory
from .notifications import NotificationEmitter
from .store import RecordStore

logger = logging.getLogger(__name__)

EFFECT_EXECUTION_LOG = "execution_log"


class ExecutionLog:
    def __init__(
        self,
        store: RecordStore,
        directory: ProfileDirectory | None = None,
        notifier: NotificationEmitter | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.notifier = notifier

    def append(
        self,
        brief_id: UUID,
        author_id: str,
        content: str,
        entry_type: EntryType,
    ) -> ExecutionLogEntry:
        """Raw append. Used by the acceptance cascade and by ``post_update``."""
        return self.store.insert(
            ExecutionLogEntry,
            {
                "brief_id": brief_id,
                "author_id": author_id,
                "content": content,
                "entry_type": entry_type,
            },
        )

    def _participants(self, brief: Brief) -> tuple[str | None, str | None]:
        """(brand actor id, accepted manufacturer actor id) for an engagement."""
        brand = self.directory.get_brand(brief.brand_id)
        accepted = self.store.first(
            Proposal,
            Proposal.brief_id == brief.id,
            Proposal.status == ProposalStatus.ACCEPTED,
        )
        manufacturer = self.directory.get_manufacturer(accepted.manufacturer_id) if accepted else None
        return (
            brand.user_id if brand else None,
            manufacturer.user_id if manufacturer else None,
        )

    def _load_for_participant(self, brief_id: UUID, actor_id: str) -> tuple[Brief, str | None, str | None]:
        brief = self.store.first(Brief, Brief.id == brief_id, Brief.deleted_at.is_(None))
        if brief is None:
            raise NotFoundError.for_resource("Brief")
        brand_actor, manufacturer_actor = self._participants(brief)
        if actor_id not in {brand_actor, manufacturer_actor} - {None}:
            raise ForbiddenError("Only engagement participants can access project updates")
        return brief, brand_actor, manufacturer_actor

    def post_update(
        self,
        brief_id: UUID,
        actor_id: str,
        content: str,
        entry_type: EntryType = EntryType.UPDATE,
    ) -> ExecutionLogEntry:
        brief, brand_actor, manufacturer_actor = self._load_for_participant(brief_id, actor_id)
        if brief.status != BriefStatus.IN_PROGRESS:
            raise BadRequestError("Project updates can only be posted while the brief is in progress")

        entry = self.append(brief.id, actor_id, content, entry_type)
        logger.info(
            "Project update posted",
            extra={"brief_id": str(brief.id), "actor_id": actor_id, "step": "execution_log"},
        )

        counterpart = manufacturer_actor if actor_id == brand_actor else brand_actor
        if self.notifier is not None:
            self.notifier.emit(
                counterpart,
                NotificationType.PROJECT_UPDATE,
                "Project Update",
                f'New {entry_type.value.lower()} on "{brief.title}"',
                {"brief_id": str(brief.id), "entry_id": str(entry.id)},
            )
        return entry

    def list_for_brief(self, brief_id: UUID, actor_id: str) -> list[ExecutionLogEntry]:
        brief, _, _ = self._load_for_participant(brief_id, actor_id)
        return self.store.query(
            ExecutionLogEntry,
            ExecutionLogEntry.brief_id == brief.id,
            order_by=(ExecutionLogEntry.created_at.desc(),),
        )


def replay_execution_log(store: RecordStore, payload: dict[str, Any]) -> None:
    ExecutionLog(store).append(
        UUID(payload["brief_id"]),
        payload["author_id"],
        payload["content"],
        EntryType(payload["entry_type"]),
    )
