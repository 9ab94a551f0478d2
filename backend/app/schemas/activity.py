from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.execution_log import EntryType
from ..models.notification import NotificationType


class NotificationOut(BaseModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    data: dict = Field(default_factory=dict)
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    items: list[NotificationOut]
    unread_count: int


class ExecutionUpdateCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)
    entry_type: EntryType = EntryType.UPDATE


class ExecutionLogEntryOut(BaseModel):
    id: UUID
    brief_id: UUID
    author_id: str
    content: str
    entry_type: EntryType
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
