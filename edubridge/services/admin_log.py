"""
edubridge/services/admin_log.py
Append-only audit trail of admin mutations

Logging is best effort: a failure here is logged and never fails the
admin operation that triggered it.
"""
import logging
from typing import Optional, Dict, Any, List

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.orm.admin_action_log import AdminActionLog

logger = logging.getLogger(__name__)


class AdminAction:
    VERIFY_USER = "verify_user"
    REJECT_USER = "reject_user"
    UPDATE_TEACHING_ASSIGNMENTS = "update_teaching_assignments"
    PROMOTE_TO_ADMIN = "promote_to_admin"
    CREATE_PROGRAMME = "create_programme"
    SET_PROGRAMME_ACTIVE = "set_programme_active"
    CREATE_SUBJECT = "create_subject"
    APPROVE_MATERIAL = "approve_material"
    REJECT_MATERIAL = "reject_material"
    UPDATE_SETTINGS = "update_settings"


async def log_admin_action(
    db: AsyncSession,
    admin_id: int,
    action: str,
    target_type: str,
    target_id,
    details: Optional[Dict[str, Any]] = None,
) -> Optional[AdminActionLog]:
    """
    Record an admin action and commit it.

    Called after the primary write has committed.
    """
    try:
        entry = AdminActionLog(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            details=details or {},
        )
        db.add(entry)
        await db.commit()
        return entry
    except Exception as e:
        logger.warning(f"Failed to log admin action {action} on {target_type}:{target_id}: {e}")
        await db.rollback()
        return None


async def list_admin_actions(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id=None,
    limit: int = 100,
) -> List[AdminActionLog]:
    query = select(AdminActionLog)
    if target_type:
        query = query.where(AdminActionLog.target_type == target_type)
    if target_id is not None:
        query = query.where(AdminActionLog.target_id == str(target_id))
    query = query.order_by(desc(AdminActionLog.timestamp), desc(AdminActionLog.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
