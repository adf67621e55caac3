"""
edubridge/schemas/notification_schemas.py
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from edubridge.orm.notification import NotificationKind


class NotificationResponse(BaseModel):
    id: int
    kind: NotificationKind
    material_id: int
    material_title: str
    subject_code: str
    programme_id: str
    actor_id: int
    actor_name: str
    comment_id: Optional[int] = None
    comment_preview: Optional[str] = None
    approval_action: Optional[str] = None
    rejection_reason: Optional[str] = None
    is_read: bool
    created_at: datetime
    link: str


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    marked: int
