"""
edubridge/services/catalog_service.py
Academic catalog: programmes and their subjects

Reads never raise for valid-but-empty queries; they return empty lists.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.errors import ConflictError, NotFoundError, ValidationError, ErrorCode
from edubridge.orm.programme import Programme
from edubridge.orm.subject import Subject
from edubridge.orm.user import User
from edubridge.services.admin_log import log_admin_action, AdminAction

logger = logging.getLogger(__name__)


# ================= READS =================

async def list_programmes(db: AsyncSession, include_inactive: bool = False) -> List[Programme]:
    query = select(Programme)
    if not include_inactive:
        query = query.where(Programme.is_active == True)
    query = query.order_by(Programme.code)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_programme(db: AsyncSession, programme_id: str) -> Optional[Programme]:
    result = await db.execute(select(Programme).where(Programme.id == programme_id))
    return result.scalar_one_or_none()


async def list_subjects(db: AsyncSession, programme_id: str, semester: int) -> List[Subject]:
    result = await db.execute(
        select(Subject)
        .where(
            Subject.programme_id == programme_id,
            Subject.semester == semester,
            Subject.is_active == True,
        )
        .order_by(Subject.code)
    )
    return list(result.scalars().all())


async def list_subjects_by_programme(db: AsyncSession, programme_id: str) -> Dict[int, List[Subject]]:
    """All active subjects of a programme grouped by semester."""
    result = await db.execute(
        select(Subject)
        .where(Subject.programme_id == programme_id, Subject.is_active == True)
        .order_by(Subject.semester, Subject.code)
    )
    grouped: Dict[int, List[Subject]] = defaultdict(list)
    for subject in result.scalars().all():
        grouped[subject.semester].append(subject)
    return dict(grouped)


async def find_subject(db: AsyncSession, programme_id: str, subject_code: str) -> Optional[Subject]:
    result = await db.execute(
        select(Subject).where(
            Subject.programme_id == programme_id,
            Subject.code == subject_code,
        )
    )
    return result.scalar_one_or_none()


async def find_subjects_by_code(db: AsyncSession, codes: Iterable[str]) -> List[Subject]:
    """Every subject whose code is in `codes`, across programmes."""
    codes = sorted({code for code in codes if code})
    if not codes:
        return []
    result = await db.execute(
        select(Subject).where(Subject.code.in_(codes)).order_by(Subject.code, Subject.programme_id)
    )
    return list(result.scalars().all())


# ================= ADMIN =================

async def create_programme(
    db: AsyncSession,
    admin: User,
    programme_id: str,
    name: str,
    department: str,
    total_semesters: int = 5,
    code: Optional[str] = None,
) -> Programme:
    programme_id = programme_id.strip().upper()
    if not programme_id:
        raise ValidationError("Programme id is required", field="id", code=ErrorCode.MISSING_FIELD)
    if total_semesters < 1:
        raise ValidationError("total_semesters must be at least 1", field="total_semesters")

    if await get_programme(db, programme_id) is not None:
        raise ConflictError(f"Programme {programme_id} already exists", code=ErrorCode.DUPLICATE)

    programme = Programme(
        id=programme_id,
        code=(code or programme_id).strip().upper(),
        name=name.strip(),
        department=department.strip(),
        total_semesters=total_semesters,
        is_active=True,
    )
    db.add(programme)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Programme {programme_id} already exists", code=ErrorCode.DUPLICATE)
    await db.refresh(programme)

    logger.info(f"Programme {programme.id} created by admin {admin.id}")
    await log_admin_action(db, admin.id, AdminAction.CREATE_PROGRAMME, "programme", programme.id,
                           {"name": programme.name})
    return programme


async def set_programme_active(db: AsyncSession, admin: User, programme_id: str, is_active: bool) -> Programme:
    """Soft-enable or soft-disable a programme. Programmes are never deleted."""
    programme = await get_programme(db, programme_id)
    if programme is None:
        raise NotFoundError("Programme", programme_id, code=ErrorCode.PROGRAMME_NOT_FOUND)

    programme.is_active = is_active
    await db.commit()
    await db.refresh(programme)

    logger.info(f"Programme {programme_id} active={is_active} (admin {admin.id})")
    await log_admin_action(db, admin.id, AdminAction.SET_PROGRAMME_ACTIVE, "programme", programme_id,
                           {"is_active": is_active})
    return programme


async def create_subject(
    db: AsyncSession,
    admin: User,
    programme_id: str,
    code: str,
    name: str,
    semester: int,
    credit_hours: int = 3,
    description: Optional[str] = None,
) -> Subject:
    """
    Raises:
        ValidationError: unknown programme or semester out of range
        ConflictError: (programme_id, code) already exists
    """
    programme = await get_programme(db, programme_id)
    if programme is None:
        raise ValidationError(f"Unknown programme: {programme_id}", field="programme_id",
                              code=ErrorCode.PROGRAMME_NOT_FOUND)

    if not 1 <= semester <= programme.total_semesters:
        raise ValidationError(
            f"Semester must be between 1 and {programme.total_semesters}",
            field="semester",
        )

    code = code.strip().upper()
    if await find_subject(db, programme_id, code) is not None:
        raise ConflictError(f"Subject {code} already exists in {programme_id}", code=ErrorCode.DUPLICATE)

    subject = Subject(
        code=code,
        name=name.strip(),
        programme_id=programme_id,
        semester=semester,
        credit_hours=credit_hours,
        description=description,
        is_active=True,
    )
    db.add(subject)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Subject {code} already exists in {programme_id}", code=ErrorCode.DUPLICATE)
    await db.refresh(subject)

    logger.info(f"Subject {programme_id}/{code} created by admin {admin.id}")
    await log_admin_action(db, admin.id, AdminAction.CREATE_SUBJECT, "subject", subject.id,
                           {"programme_id": programme_id, "code": code})
    return subject
