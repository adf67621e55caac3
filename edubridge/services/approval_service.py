"""
edubridge/services/approval_service.py
Approval workflow for uploaded materials

STATE MACHINE:
    pending -> approved
    pending -> rejected
    approved, rejected: terminal

CHECK ORDER (every decision):
    1. input (rejection reason)       -> ValidationError
    2. material exists                -> NotFoundError
    3. actor may decide this material -> AuthorizationError
    4. material still pending         -> ConflictError
    5. conditional UPDATE ... WHERE approval_status = 'pending'
       zero rows means another reviewer won the race -> ConflictError

Step 5 makes decisions idempotent under retry: a replayed approval finds the
row already decided and can never overwrite approved_by or rejection_reason.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, desc
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.config.feature_flags import FeatureFlags
from edubridge.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    ErrorCode,
)
from edubridge.orm.material import Material, ApprovalStatus
from edubridge.orm.user import User, UserRole
from edubridge.services.admin_log import log_admin_action, AdminAction
from edubridge.services.notification_service import create_approval_notification
from edubridge.services.reviewer_scope import ReviewerScope, resolve_reviewer_scope
from edubridge.services.settings_service import SettingsCache

logger = logging.getLogger(__name__)


@dataclass
class ReviewQueue:
    scope: ReviewerScope
    materials: List[Material]

    @property
    def is_unassigned(self) -> bool:
        return self.scope.kind == "unassigned"


def is_valid_transition(from_status: ApprovalStatus, to_status: ApprovalStatus) -> bool:
    return from_status == ApprovalStatus.pending and to_status in (
        ApprovalStatus.approved,
        ApprovalStatus.rejected,
    )


async def _load_lecturer(db: AsyncSession, lecturer_id: int) -> User:
    lecturer = await db.get(User, lecturer_id)
    if lecturer is None or lecturer.role != UserRole.lecturer:
        raise AuthorizationError("Only lecturers can review materials", code=ErrorCode.ROLE_NOT_ALLOWED)
    return lecturer


async def _decide(
    db: AsyncSession,
    material_id: int,
    actor_id: int,
    actor_role: UserRole,
    actor_name: Optional[str],
    to_status: ApprovalStatus,
    reason: Optional[str],
    cache: Optional[SettingsCache],
) -> Material:
    action = "approve" if to_status == ApprovalStatus.approved else "reject"
    logger.info(
        f"[APPROVAL ATTEMPT] material={material_id} action={action} "
        f"by={actor_id} role={actor_role.value}"
    )

    material = await db.get(Material, material_id)
    if material is None:
        raise NotFoundError("Material", material_id, code=ErrorCode.MATERIAL_NOT_FOUND)

    actor = await db.get(User, actor_id)
    if actor is None or actor.role != actor_role:
        logger.warning(f"[APPROVAL BLOCKED] material={material_id}: user {actor_id} is not a {actor_role.value}")
        raise AuthorizationError(
            f"Only {actor_role.value}s can perform this action",
            code=ErrorCode.ROLE_NOT_ALLOWED,
        )
    actor_name = actor_name or actor.full_name

    if actor.role == UserRole.lecturer:
        if material.uploader_id == actor.id:
            logger.warning(f"[APPROVAL BLOCKED] material={material_id}: reviewer {actor.id} is the uploader")
            raise AuthorizationError("You cannot review your own upload", code=ErrorCode.SELF_REVIEW)

        scope = resolve_reviewer_scope(actor)
        if not scope.covers(material):
            logger.warning(
                f"[APPROVAL BLOCKED] material={material_id} ({material.programme_id}/{material.subject_code}) "
                f"outside scope of lecturer {actor.id}: {scope.to_dict()}"
            )
            raise AuthorizationError(
                "You can only review materials for subjects you teach",
                details={"subject_code": material.subject_code, "scope": scope.kind},
                code=ErrorCode.SCOPE_VIOLATION,
            )

    if not is_valid_transition(material.approval_status, to_status):
        logger.warning(
            f"[APPROVAL BLOCKED] material={material_id} already {material.approval_status.value}"
        )
        raise ConflictError(
            f"Material has already been {material.approval_status.value}",
            details={"approval_status": material.approval_status.value},
            code=ErrorCode.MATERIAL_ALREADY_DECIDED,
        )

    values = {
        "approval_status": to_status,
        "approved_by": actor.id,
        "approver_name": actor_name,
        "approver_role": actor.role.value,
        "approved_date": datetime.utcnow(),
    }
    if to_status == ApprovalStatus.rejected:
        values["rejection_reason"] = reason

    result = await db.execute(
        update(Material)
        .where(Material.id == material_id, Material.approval_status == ApprovalStatus.pending)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if (result.rowcount or 0) == 0:
        await db.rollback()
        logger.warning(f"[APPROVAL BLOCKED] material={material_id} decided concurrently")
        raise ConflictError(
            "Material was decided by another reviewer",
            code=ErrorCode.MATERIAL_ALREADY_DECIDED,
        )

    await db.commit()
    await db.refresh(material)

    logger.info(
        f"[APPROVAL SUCCESS] material={material_id} pending -> {to_status.value} "
        f"by={actor.id} role={actor.role.value}"
    )

    await create_approval_notification(
        db, material, actor, action=to_status.value, rejection_reason=reason, cache=cache
    )
    return material


def _require_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required", field="reason", code=ErrorCode.MISSING_FIELD)
    return reason


# ================= LECTURER DECISIONS =================

async def approve_material_by_lecturer(
    db: AsyncSession,
    material_id: int,
    lecturer_id: int,
    lecturer_name: Optional[str] = None,
    cache: Optional[SettingsCache] = None,
) -> Material:
    return await _decide(
        db, material_id, lecturer_id, UserRole.lecturer, lecturer_name,
        ApprovalStatus.approved, None, cache,
    )


async def reject_material_by_lecturer(
    db: AsyncSession,
    material_id: int,
    lecturer_id: int,
    lecturer_name: Optional[str],
    reason: str,
    cache: Optional[SettingsCache] = None,
) -> Material:
    reason = _require_reason(reason)
    return await _decide(
        db, material_id, lecturer_id, UserRole.lecturer, lecturer_name,
        ApprovalStatus.rejected, reason, cache,
    )


# ================= ADMIN DECISIONS =================

def _require_admin_review():
    if not FeatureFlags.FEATURE_ADMIN_MATERIAL_REVIEW:
        raise AuthorizationError("Admin material review is disabled", code=ErrorCode.FORBIDDEN)


async def approve_material_by_admin(
    db: AsyncSession,
    material_id: int,
    admin_id: int,
    cache: Optional[SettingsCache] = None,
) -> Material:
    """Same state machine as lecturers, without scope restriction."""
    _require_admin_review()
    material = await _decide(
        db, material_id, admin_id, UserRole.admin, None,
        ApprovalStatus.approved, None, cache,
    )
    await log_admin_action(db, admin_id, AdminAction.APPROVE_MATERIAL, "material", material_id)
    return material


async def reject_material_by_admin(
    db: AsyncSession,
    material_id: int,
    admin_id: int,
    reason: str,
    cache: Optional[SettingsCache] = None,
) -> Material:
    reason = _require_reason(reason)
    _require_admin_review()
    material = await _decide(
        db, material_id, admin_id, UserRole.admin, None,
        ApprovalStatus.rejected, reason, cache,
    )
    await log_admin_action(db, admin_id, AdminAction.REJECT_MATERIAL, "material", material_id,
                           {"reason": reason})
    return material


# ================= REVIEW QUEUE =================

async def _pending_in_scope(db: AsyncSession, scope: ReviewerScope) -> List[Material]:
    result = await db.execute(
        select(Material)
        .where(
            Material.approval_status == ApprovalStatus.pending,
            Material.uploader_role == UserRole.student.value,
            scope.filter_clause(),
        )
        .order_by(desc(Material.upload_date), desc(Material.id))
    )
    return list(result.scalars().all())


async def get_review_queue(db: AsyncSession, lecturer_id: int) -> ReviewQueue:
    """Pending student uploads covered by the lecturer's scope, plus the scope itself."""
    lecturer = await _load_lecturer(db, lecturer_id)
    scope = resolve_reviewer_scope(lecturer)
    materials = await _pending_in_scope(db, scope)
    logger.info(f"Review queue for lecturer {lecturer_id}: {len(materials)} pending ({scope.kind} scope)")
    return ReviewQueue(scope=scope, materials=materials)


async def get_pending_materials_for_lecturer(db: AsyncSession, lecturer_id: int) -> List[Material]:
    queue = await get_review_queue(db, lecturer_id)
    return queue.materials
