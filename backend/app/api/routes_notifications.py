from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..schemas.activity import NotificationList, NotificationOut
from ..services.notifications import NotificationEmitter
from .deps import get_actor_id, get_notifier, verify_api_key

router = APIRouter(tags=["notifications"], dependencies=[Depends(verify_api_key)])


@router.get("/notifications", response_model=NotificationList)
def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    actor_id: str = Depends(get_actor_id),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    items = notifier.list_for_recipient(actor_id, limit=limit, unread_only=unread_only)
    return NotificationList(
        items=[NotificationOut.model_validate(n) for n in items],
        unread_count=notifier.unread_count(actor_id),
    )


@router.patch("/notifications/read-all")
def mark_all_notifications_read(
    actor_id: str = Depends(get_actor_id),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    return {"updated": notifier.mark_all_read(actor_id)}


@router.patch("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: UUID,
    actor_id: str = Depends(get_actor_id),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    return notifier.mark_read(notification_id, actor_id)
