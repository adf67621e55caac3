"""
edubridge/services/notification_service.py
In-app notifications for comment and approval events

Creation is best effort. It runs after the triggering write has committed;
failures are logged and never undo or fail that write.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, update, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.config.settings import settings
from edubridge.errors import AuthorizationError, NotFoundError, ErrorCode
from edubridge.orm.comment import Comment
from edubridge.orm.material import Material
from edubridge.orm.notification import Notification, NotificationKind
from edubridge.orm.user import User
from edubridge.services.navigation import build_material_link
from edubridge.services.settings_service import get_system_policy, SettingsCache

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def comment_preview(content: str) -> str:
    """First 100 characters, with "..." when truncated."""
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


def notification_link(notification: Notification, base_url: Optional[str] = None) -> str:
    """Deep link that opens the material (and comment) the notification is about."""
    return build_material_link(
        programme_id=notification.programme_id,
        subject_code=notification.subject_code,
        material_id=notification.material_id,
        show_comments=notification.kind == NotificationKind.comment,
        comment_id=notification.comment_id,
        base_url=settings.DASHBOARD_BASE_URL if base_url is None else base_url,
    )


async def _notifications_enabled(db: AsyncSession, cache: Optional[SettingsCache]) -> bool:
    policy = await get_system_policy(db, cache)
    return policy.platform.enable_notifications


async def _save(db: AsyncSession, notification: Notification, description: str) -> Optional[Notification]:
    try:
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
        return notification
    except Exception as e:
        logger.warning(f"Failed to create {description} notification: {e}")
        await db.rollback()
        return None


async def create_comment_notification(
    db: AsyncSession,
    material: Material,
    comment: Comment,
    actor: User,
    cache: Optional[SettingsCache] = None,
) -> Optional[Notification]:
    """Tell the material's uploader about a new comment by someone else."""
    if material.uploader_id == actor.id:
        return None

    try:
        if not await _notifications_enabled(db, cache):
            return None
    except Exception as e:
        logger.warning(f"Could not read notification settings: {e}")
        return None

    notification = Notification(
        user_id=material.uploader_id,
        kind=NotificationKind.comment,
        material_id=material.id,
        material_title=material.title,
        subject_code=material.subject_code,
        programme_id=material.programme_id,
        actor_id=actor.id,
        actor_name=actor.full_name,
        comment_id=comment.id,
        comment_preview=comment_preview(comment.content),
    )
    return await _save(db, notification, "comment")


async def create_approval_notification(
    db: AsyncSession,
    material: Material,
    actor: User,
    action: str,
    rejection_reason: Optional[str] = None,
    cache: Optional[SettingsCache] = None,
) -> Optional[Notification]:
    """Tell the uploader that their material was approved or rejected."""
    try:
        if not await _notifications_enabled(db, cache):
            return None
    except Exception as e:
        logger.warning(f"Could not read notification settings: {e}")
        return None

    notification = Notification(
        user_id=material.uploader_id,
        kind=NotificationKind.approval,
        material_id=material.id,
        material_title=material.title,
        subject_code=material.subject_code,
        programme_id=material.programme_id,
        actor_id=actor.id,
        actor_name=actor.full_name,
        approval_action=action,
        rejection_reason=rejection_reason,
    )
    return await _save(db, notification, "approval")


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    kind: Optional[NotificationKind] = None,
    limit: int = 50,
) -> List[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if kind is not None:
        query = query.where(Notification.kind == kind)
    query = query.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read == False,
        )
    )
    return result.scalar() or 0


async def mark_notification_read(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    result = await db.execute(select(Notification).where(Notification.id == notification_id))
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification", notification_id, code=ErrorCode.NOTIFICATION_NOT_FOUND)
    if notification.user_id != user_id:
        raise AuthorizationError("This notification does not belong to you", code=ErrorCode.OWNERSHIP_VIOLATION)

    if not notification.is_read:
        notification.is_read = True
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    """Returns the number of notifications marked."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read == False)
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0
