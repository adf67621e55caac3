"""
edubridge/routes/catalog.py
Academic catalog API: programmes and subjects
"""
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import run_db_operation
from edubridge.errors import NotFoundError, ErrorCode
from edubridge.orm.user import User
from edubridge.schemas.catalog_schemas import (
    ProgrammeResponse,
    ProgrammeCreate,
    ProgrammeUpdate,
    SubjectResponse,
    SubjectCreate,
    SubjectsBySemesterResponse,
)
from edubridge.security.rbac import get_current_user, require_admin
from edubridge.services import catalog_service

router = APIRouter(prefix="/catalog", tags=["catalog"])
logger = logging.getLogger(__name__)


@router.get("/programmes", response_model=List[ProgrammeResponse])
async def list_programmes(
    request: Request,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Only admins see retired programmes
    include_inactive = include_inactive and current_user.is_admin
    return await run_db_operation(
        request, db,
        lambda: catalog_service.list_programmes(db, include_inactive=include_inactive),
        "list_programmes",
    )


@router.get(
    "/programmes/{programme_id}/subjects",
    response_model=Union[List[SubjectResponse], SubjectsBySemesterResponse],
)
async def list_subjects(
    request: Request,
    programme_id: str,
    semester: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Subjects of one semester, or every semester grouped when `semester`
    is omitted.
    """
    programme_id = programme_id.upper()
    if semester is not None:
        subjects = await run_db_operation(
            request, db,
            lambda: catalog_service.list_subjects(db, programme_id, semester),
            "list_subjects",
        )
        return [SubjectResponse.model_validate(subject) for subject in subjects]

    grouped = await run_db_operation(
        request, db,
        lambda: catalog_service.list_subjects_by_programme(db, programme_id),
        "list_subjects_by_programme",
    )
    return SubjectsBySemesterResponse(
        programme_id=programme_id,
        semesters={
            semester_number: [SubjectResponse.model_validate(subject) for subject in subjects]
            for semester_number, subjects in grouped.items()
        },
    )


@router.get("/programmes/{programme_id}/subjects/{subject_code}", response_model=SubjectResponse)
async def get_subject(
    request: Request,
    programme_id: str,
    subject_code: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    subject = await run_db_operation(
        request, db,
        lambda: catalog_service.find_subject(db, programme_id.upper(), subject_code.upper()),
        "find_subject",
    )
    if subject is None:
        raise NotFoundError("Subject", f"{programme_id}/{subject_code}", code=ErrorCode.SUBJECT_NOT_FOUND)
    return subject


# ============================================================================
# ADMIN
# ============================================================================

@router.post("/programmes", response_model=ProgrammeResponse, status_code=201)
async def create_programme(
    request: Request,
    data: ProgrammeCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: catalog_service.create_programme(
            db, admin,
            programme_id=data.id,
            name=data.name,
            department=data.department,
            total_semesters=data.total_semesters,
            code=data.code,
        ),
        "create_programme",
    )


@router.patch("/programmes/{programme_id}", response_model=ProgrammeResponse)
async def update_programme(
    request: Request,
    programme_id: str,
    data: ProgrammeUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: catalog_service.set_programme_active(db, admin, programme_id.upper(), data.is_active),
        "set_programme_active",
    )


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
async def create_subject(
    request: Request,
    data: SubjectCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return await run_db_operation(
        request, db,
        lambda: catalog_service.create_subject(
            db, admin,
            programme_id=data.programme_id.upper(),
            code=data.code,
            name=data.name,
            semester=data.semester,
            credit_hours=data.credit_hours,
            description=data.description,
        ),
        "create_subject",
    )
