"""
edubridge/routes/notifications.py
Notification inbox API
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import run_db_operation
from edubridge.orm.notification import Notification, NotificationKind
from edubridge.orm.user import User
from edubridge.schemas.notification_schemas import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse,
)
from edubridge.security.rbac import get_current_user
from edubridge.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        kind=notification.kind,
        material_id=notification.material_id,
        material_title=notification.material_title,
        subject_code=notification.subject_code,
        programme_id=notification.programme_id,
        actor_id=notification.actor_id,
        actor_name=notification.actor_name,
        comment_id=notification.comment_id,
        comment_preview=notification.comment_preview,
        approval_action=notification.approval_action,
        rejection_reason=notification.rejection_reason,
        is_read=notification.is_read,
        created_at=notification.created_at,
        link=notification_service.notification_link(notification),
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    request: Request,
    kind: Optional[NotificationKind] = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    async def operation():
        notifications = await notification_service.list_notifications(db, current_user.id, kind=kind, limit=limit)
        unread = await notification_service.get_unread_count(db, current_user.id)
        return notifications, unread

    notifications, unread = await run_db_operation(request, db, operation, "list_notifications")
    return NotificationListResponse(
        notifications=[_to_response(notification) for notification in notifications],
        unread_count=unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = await run_db_operation(
        request, db,
        lambda: notification_service.get_unread_count(db, current_user.id),
        "get_unread_count",
    )
    return UnreadCountResponse(unread_count=count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    marked = await run_db_operation(
        request, db,
        lambda: notification_service.mark_all_read(db, current_user.id),
        "mark_all_read",
    )
    return MarkAllReadResponse(marked=marked)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    request: Request,
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notification = await run_db_operation(
        request, db,
        lambda: notification_service.mark_notification_read(db, notification_id, current_user.id),
        "mark_notification_read",
    )
    return _to_response(notification)
