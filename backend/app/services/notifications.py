# backend/app/services/notifications.py
from __future__ import annotations

from typing import Any
from uuid import UUID
import logging

from ..core.errors import NotFoundError
from ..models.notification import Notification, NotificationType
from ..schemas.profile import ProfileRole
from .directory import ProfileDirectory, get_profile_directory
from .outbox import Outbox
from .store import RecordStore

logger = logging.getLogger(__name__)

EFFECT_NOTIFICATION = "notification"
EFFECT_PROFILE_NOTIFICATION = "profile_notification"
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class NotificationEmitter:
    def __init__(self, store: RecordStore, outbox: Outbox | None = None) -> None:
        self.store = store
        self.outbox = outbox

    def create(
        self,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        return self.store.insert(
            Notification,
            {
                "recipient_id": recipient_id,
                "type": type,
                "title": title,
                "message": message,
                "data": data or {},
                "is_read": False,
            },
        )

    def emit(
        self,
        recipient_id: str | None,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """
        Best-effort, fire-and-forget notification.
        Failure must NEVER break the calling operation; it is logged and
        handed to the outbox for a later retry.
        """
        if not recipient_id:
            logger.warning(
                "Skipping %s notification without recipient", type.value,
                extra={"step": "notify"},
            )
            return None
        try:
            return self.create(recipient_id, type, title, message, data)
        except Exception:
            logger.exception(
                "Failed to write notification",
                extra={"actor_id": recipient_id, "step": "notify"},
            )
            self._queue(
                EFFECT_NOTIFICATION,
                {"recipient_id": recipient_id},
                type, title, message, data,
            )
            return None

    def emit_to_profile(
        self,
        directory: ProfileDirectory,
        role: ProfileRole,
        profile_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """
        ``emit`` addressed to a brand or manufacturer profile. If the directory
        cannot be reached the notification is queued as-is and the recipient
        is resolved again when the outbox replays it.
        """
        try:
            recipient_id = resolve_recipient(directory, role, profile_id)
        except Exception:
            logger.exception(
                "Recipient lookup failed for %s notification", type.value,
                extra={"step": "notify"},
            )
            self._queue(
                EFFECT_PROFILE_NOTIFICATION,
                {"role": role.value, "profile_id": str(profile_id)},
                type, title, message, data,
            )
            return None
        return self.emit(recipient_id, type, title, message, data)

    def _queue(
        self,
        effect_type: str,
        address: dict[str, Any],
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None,
    ) -> None:
        if self.outbox is None:
            return
        self.outbox.record(
            effect_type,
            {
                **address,
                "type": type.value,
                "title": title,
                "message": message,
                "data": data or {},
            },
        )

    # ------------------------------------------------------------------
    # Recipient operations
    # ------------------------------------------------------------------

    def list_for_recipient(
        self,
        recipient_id: str,
        *,
        limit: int = DEFAULT_LIST_LIMIT,
        unread_only: bool = False,
    ) -> list[Notification]:
        criteria = [Notification.recipient_id == recipient_id]
        if unread_only:
            criteria.append(Notification.is_read.is_(False))
        return self.store.query(
            Notification,
            *criteria,
            order_by=(Notification.created_at.desc(),),
            limit=max(1, min(limit, MAX_LIST_LIMIT)),
        )

    def unread_count(self, recipient_id: str) -> int:
        return self.store.count(
            Notification,
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )

    def mark_read(self, notification_id: UUID, recipient_id: str) -> Notification:
        updated = self.store.update(
            Notification,
            notification_id,
            {"is_read": True},
            Notification.recipient_id == recipient_id,
        )
        if updated is None:
            raise NotFoundError.for_resource("Notification")
        return updated

    def mark_all_read(self, recipient_id: str) -> int:
        return self.store.update_where(
            Notification,
            [Notification.recipient_id == recipient_id, Notification.is_read.is_(False)],
            {"is_read": True},
        )


def resolve_recipient(directory: ProfileDirectory, role: ProfileRole, profile_id: UUID) -> str | None:
    if role == ProfileRole.BRAND:
        profile = directory.get_brand(profile_id)
    else:
        profile = directory.get_manufacturer(profile_id)
    return profile.user_id if profile else None


def replay_profile_notification(store: RecordStore, payload: dict[str, Any]) -> None:
    """Outbox handler for notifications whose recipient could not be resolved."""
    role = ProfileRole(payload["role"])
    recipient_id = resolve_recipient(get_profile_directory(store), role, UUID(payload["profile_id"]))
    if recipient_id is None:
        raise NotFoundError(f"No {role.value} profile {payload['profile_id']}")
    NotificationEmitter(store).create(
        recipient_id,
        NotificationType(payload["type"]),
        payload["title"],
        payload["message"],
        payload.get("data") or {},
    )


def replay_notification(store: RecordStore, payload: dict[str, Any]) -> None:
    """Outbox handler for notifications that failed the first time."""
    NotificationEmitter(store).create(
        payload["recipient_id"],
        NotificationType(payload["type"]),
        payload["title"],
        payload["message"],
        payload.get("data") or {},
    )
