"""
edubridge/routes/approvals.py
Approval workflow API: review queue and decisions
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import get_settings_cache, run_db_operation
from edubridge.orm.user import User
from edubridge.schemas.material_schemas import (
    MaterialResponse,
    RejectRequest,
    ReviewQueueResponse,
    LecturerStatsResponse,
)
from edubridge.security.rbac import require_lecturer, require_reviewer
from edubridge.services import approval_service, material_service
from edubridge.services.settings_service import SettingsCache

router = APIRouter(prefix="/approvals", tags=["approvals"])
logger = logging.getLogger(__name__)


@router.get("/pending", response_model=ReviewQueueResponse)
async def review_queue(
    request: Request,
    db: AsyncSession = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    """
    Pending materials the caller may review.

    `scope` is "unassigned" when the lecturer has no teaching assignment at
    all, which is different from an empty queue.
    """
    queue = await run_db_operation(
        request, db,
        lambda: approval_service.get_review_queue(db, lecturer.id),
        "get_review_queue",
    )
    return ReviewQueueResponse(
        scope=queue.scope.kind,
        scope_details=queue.scope.to_dict(),
        materials=[MaterialResponse.model_validate(material) for material in queue.materials],
    )


@router.get("/stats", response_model=LecturerStatsResponse)
async def lecturer_stats(
    request: Request,
    db: AsyncSession = Depends(get_db),
    lecturer: User = Depends(require_lecturer),
):
    stats = await run_db_operation(
        request, db,
        lambda: material_service.get_lecturer_stats(db, lecturer),
        "get_lecturer_stats",
    )
    return LecturerStatsResponse(**stats)


@router.post("/{material_id}/approve", response_model=MaterialResponse)
async def approve_material(
    request: Request,
    material_id: int,
    db: AsyncSession = Depends(get_db),
    reviewer: User = Depends(require_reviewer),
    cache: SettingsCache = Depends(get_settings_cache),
):
    if reviewer.is_admin:
        operation = lambda: approval_service.approve_material_by_admin(
            db, material_id, reviewer.id, cache=cache
        )
    else:
        operation = lambda: approval_service.approve_material_by_lecturer(
            db, material_id, reviewer.id, reviewer.full_name, cache=cache
        )
    return await run_db_operation(request, db, operation, "approve_material")


@router.post("/{material_id}/reject", response_model=MaterialResponse)
async def reject_material(
    request: Request,
    material_id: int,
    data: RejectRequest,
    db: AsyncSession = Depends(get_db),
    reviewer: User = Depends(require_reviewer),
    cache: SettingsCache = Depends(get_settings_cache),
):
    if reviewer.is_admin:
        operation = lambda: approval_service.reject_material_by_admin(
            db, material_id, reviewer.id, data.reason, cache=cache
        )
    else:
        operation = lambda: approval_service.reject_material_by_lecturer(
            db, material_id, reviewer.id, reviewer.full_name, data.reason, cache=cache
        )
    return await run_db_operation(request, db, operation, "reject_material")
