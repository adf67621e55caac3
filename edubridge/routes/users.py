"""
edubridge/routes/users.py
Identity directory API: registration, profile and admin user management
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import run_db_operation
from edubridge.orm.user import User, UserRole, VerificationStatus
from edubridge.schemas.user_schemas import (
    StudentRegistration,
    LecturerRegistration,
    TeachingAssignmentUpdate,
    UserRejectRequest,
    UserResponse,
    TeachingSubjectAuditResponse,
)
from edubridge.security.rbac import get_current_user, require_admin
from edubridge.services import identity_service

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


# ============================================================================
# REGISTRATION (open)
# ============================================================================

@router.post("/students", response_model=UserResponse, status_code=201)
async def register_student(
    request: Request,
    data: StudentRegistration,
    db: AsyncSession = Depends(get_db),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.register_student(
            db,
            matric_id=data.matric_id,
            full_name=data.full_name,
            email=data.email,
            phone_number=data.phone_number,
        ),
        "register_student",
    )


@router.post("/lecturers", response_model=UserResponse, status_code=201)
async def register_lecturer(
    request: Request,
    data: LecturerRegistration,
    db: AsyncSession = Depends(get_db),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.register_lecturer(
            db,
            employee_id=data.employee_id,
            full_name=data.full_name,
            email=data.email,
            phone_number=data.phone_number,
            department=data.department,
            programmes=data.programmes,
            teaching_subjects=data.teaching_subjects,
        ),
        "register_lecturer",
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


# ============================================================================
# ADMIN
# ============================================================================

@router.get("", response_model=List[UserResponse])
async def list_users(
    request: Request,
    role: Optional[UserRole] = None,
    verification_status: Optional[VerificationStatus] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.list_users(db, role=role, verification_status=verification_status),
        "list_users",
    )


@router.get("/integrity/teaching-subjects", response_model=TeachingSubjectAuditResponse)
async def audit_teaching_subjects(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    drift = await run_db_operation(
        request, db,
        lambda: identity_service.audit_teaching_subjects(db),
        "audit_teaching_subjects",
    )
    return TeachingSubjectAuditResponse(lecturers_with_drift=len(drift), missing_subjects=drift)


@router.post("/{user_id}/verify", response_model=UserResponse)
async def verify_user(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.verify_user(db, admin, user_id),
        "verify_user",
    )


@router.post("/{user_id}/reject", response_model=UserResponse)
async def reject_user(
    request: Request,
    user_id: int,
    data: UserRejectRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.reject_user(db, admin, user_id, data.reason),
        "reject_user",
    )


@router.put("/{user_id}/teaching-assignments", response_model=UserResponse)
async def update_teaching_assignments(
    request: Request,
    user_id: int,
    data: TeachingAssignmentUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.update_teaching_assignments(
            db, admin, user_id,
            teaching_subjects=data.teaching_subjects,
            programmes=data.programmes,
        ),
        "update_teaching_assignments",
    )


@router.post("/{user_id}/promote", response_model=UserResponse)
async def promote_to_admin(
    request: Request,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: identity_service.promote_to_admin(db, admin, user_id),
        "promote_to_admin",
    )
