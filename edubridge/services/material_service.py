"""
edubridge/services/material_service.py
Material store: creation, reads, search and usage counters

Creation validates everything before the single insert. Decisions on
pending materials belong to approval_service.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func, desc, or_
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.errors import AuthorizationError, NotFoundError, ValidationError, ErrorCode
from edubridge.orm.material import Material, MaterialType, ApprovalStatus
from edubridge.orm.user import User, UserRole
from edubridge.schemas.material_schemas import MaterialMetadata, FileDescriptor, MaterialFilter
from edubridge.services import catalog_service
from edubridge.services.reviewer_scope import resolve_reviewer_scope
from edubridge.services.settings_service import get_system_policy, SettingsCache

logger = logging.getLogger(__name__)

UPLOADER_ROLES = (UserRole.student, UserRole.lecturer)

# (field label, attribute, weight)
SEARCH_FIELDS = [
    ("title", "title", 3),
    ("description", "description", 2),
    ("subject_name", "subject_name", 2),
    ("uploader_name", "uploader_name", 1),
    ("subject_code", "subject_code", 1),
    ("material_type", "material_type", 1),
]

SORT_FIELDS = ("relevance", "date", "title", "downloads")


@dataclass
class SearchHit:
    material: Material
    relevance_score: int = 0
    matched_fields: List[str] = field(default_factory=list)


# ================= CREATION =================

def check_file_descriptor(file: FileDescriptor, policy) -> None:
    """
    Check a material file against the upload policy.

    Raises:
        ValidationError naming the offending field
    """
    if file.file_size <= 0:
        raise ValidationError("File is empty", field="file_size", code=ErrorCode.FILE_REJECTED)
    if file.file_size > policy.max_file_size:
        max_mb = policy.max_file_size / (1024 * 1024)
        raise ValidationError(
            f"File size exceeds the {max_mb:g}MB limit",
            field="file_size",
            details={"max_file_size": policy.max_file_size},
            code=ErrorCode.FILE_REJECTED,
        )
    if file.file_type not in policy.allowed_file_types:
        raise ValidationError(
            f"File type {file.file_type} is not allowed",
            field="file_type",
            details={"allowed_file_types": policy.allowed_file_types},
            code=ErrorCode.FILE_REJECTED,
        )
    if len(file.file_name) > policy.max_file_name_length:
        raise ValidationError(
            f"File name must be at most {policy.max_file_name_length} characters",
            field="file_name",
            code=ErrorCode.FILE_REJECTED,
        )


async def create_material(
    db: AsyncSession,
    metadata: MaterialMetadata,
    file: FileDescriptor,
    uploader_id: int,
    uploader_role: UserRole,
    cache: Optional[SettingsCache] = None,
) -> Material:
    """
    Validate and store a new material.

    Lecturer uploads are approved on creation while lecturer auto-approval
    is on; everything else starts pending.

    Raises:
        AuthorizationError: uploader unknown, an admin, or blocked by restrictions
        ValidationError: catalog placement or file descriptor invalid
    """
    uploader = await db.get(User, uploader_id)
    if uploader is None or uploader.role != uploader_role or uploader.role not in UPLOADER_ROLES:
        logger.warning(f"Upload refused: user {uploader_id} ({uploader_role}) may not upload")
        raise AuthorizationError("Only students and lecturers can upload materials",
                                 code=ErrorCode.ROLE_NOT_ALLOWED)

    subject = await catalog_service.find_subject(db, metadata.programme_id, metadata.subject_code)
    if subject is None:
        raise ValidationError(
            f"Subject {metadata.subject_code} is not offered in {metadata.programme_id}",
            field="subject_code",
            code=ErrorCode.SUBJECT_NOT_FOUND,
        )
    if subject.semester != metadata.semester:
        raise ValidationError(
            f"Subject {subject.code} is taught in semester {subject.semester}",
            field="semester",
        )

    policy = await get_system_policy(db, cache)
    if policy.platform.maintenance_mode:
        raise AuthorizationError("Uploads are paused while the platform is under maintenance",
                                 code=ErrorCode.FORBIDDEN)
    check_file_descriptor(file, policy.file_upload)

    restrictions = policy.restrictions
    if uploader.is_student:
        if restrictions.students_can_only_upload_notes and metadata.material_type != MaterialType.note:
            raise AuthorizationError("Students can only upload notes", code=ErrorCode.ROLE_NOT_ALLOWED)
        if (restrictions.students_can_only_upload_to_own_programme
                and metadata.programme_id != uploader.programme):
            raise AuthorizationError("Students can only upload to their own programme",
                                     code=ErrorCode.SCOPE_VIOLATION)

    auto_approve = uploader.is_lecturer and restrictions.lecturer_auto_approval
    now = datetime.utcnow()

    material = Material(
        title=metadata.title,
        description=metadata.description,
        material_type=metadata.material_type,
        file_name=file.file_name,
        file_size=file.file_size,
        file_type=file.file_type,
        download_url=file.download_url,
        programme_id=subject.programme_id,
        semester=subject.semester,
        subject_code=subject.code,
        subject_name=subject.name,
        uploader_id=uploader.id,
        uploader_name=uploader.full_name,
        uploader_role=uploader.role.value,
        upload_date=now,
        approval_status=ApprovalStatus.approved if auto_approve else ApprovalStatus.pending,
        approved_date=now if auto_approve else None,
        download_count=0,
        views=0,
    )
    db.add(material)
    await db.commit()
    await db.refresh(material)

    logger.info(
        f"Material {material.id} created by {uploader.role.value} {uploader.id} "
        f"in {material.programme_id}/{material.subject_code}: {material.approval_status.value}"
    )
    return material


# ================= READS =================

def can_view(material: Material, viewer: Optional[User]) -> bool:
    """Approved materials are public; others only to uploader, admins and in-scope lecturers."""
    if material.approval_status == ApprovalStatus.approved:
        return True
    if viewer is None:
        return False
    if viewer.is_admin or viewer.id == material.uploader_id:
        return True
    if viewer.is_lecturer:
        return resolve_reviewer_scope(viewer).covers(material)
    return False


async def get_material(db: AsyncSession, material_id: int, viewer: Optional[User] = None) -> Material:
    material = await db.get(Material, material_id)
    if material is None or not can_view(material, viewer):
        raise NotFoundError("Material", material_id, code=ErrorCode.MATERIAL_NOT_FOUND)
    return material


def _apply_filter(query, material_filter: Optional[MaterialFilter]):
    if material_filter is None:
        return query
    if material_filter.programme_id:
        query = query.where(Material.programme_id == material_filter.programme_id)
    if material_filter.semester is not None:
        query = query.where(Material.semester == material_filter.semester)
    if material_filter.subject_code:
        query = query.where(Material.subject_code == material_filter.subject_code)
    if material_filter.material_type is not None:
        query = query.where(Material.material_type == material_filter.material_type)
    if material_filter.uploader_id is not None:
        query = query.where(Material.uploader_id == material_filter.uploader_id)
    return query


async def list_materials(
    db: AsyncSession,
    material_filter: Optional[MaterialFilter] = None,
    limit: int = 100,
) -> List[Material]:
    """Approved materials, newest first."""
    query = select(Material).where(Material.approval_status == ApprovalStatus.approved)
    query = _apply_filter(query, material_filter)

    if material_filter is not None and material_filter.query:
        pattern = f"%{material_filter.query.strip()}%"
        query = query.where(or_(
            Material.title.ilike(pattern),
            Material.description.ilike(pattern),
            Material.subject_name.ilike(pattern),
            Material.subject_code.ilike(pattern),
        ))

    query = query.order_by(desc(Material.upload_date), desc(Material.id)).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_uploads(db: AsyncSession, uploader_id: int) -> List[Material]:
    """Everything a user uploaded, any status, newest first."""
    result = await db.execute(
        select(Material)
        .where(Material.uploader_id == uploader_id)
        .order_by(desc(Material.upload_date), desc(Material.id))
    )
    return list(result.scalars().all())


async def get_popular_materials(db: AsyncSession, limit: int = 10) -> List[Material]:
    result = await db.execute(
        select(Material)
        .where(Material.approval_status == ApprovalStatus.approved)
        .order_by(desc(Material.download_count), desc(Material.upload_date))
        .limit(limit)
    )
    return list(result.scalars().all())


def score_material(material: Material, term: str) -> SearchHit:
    """Weighted substring match: title 3, description 2, subject name 2, the rest 1."""
    hit = SearchHit(material=material)
    for label, attribute, weight in SEARCH_FIELDS:
        value = getattr(material, attribute)
        if value is None:
            continue
        text = value.value if isinstance(value, MaterialType) else str(value)
        if term in text.lower():
            hit.relevance_score += weight
            hit.matched_fields.append(label)
    return hit


async def search_materials(
    db: AsyncSession,
    query: Optional[str] = None,
    material_filter: Optional[MaterialFilter] = None,
    sort_by: str = "relevance",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[SearchHit], int]:
    """
    Search approved materials.

    Returns:
        (page of hits, total number of hits before paging)
    """
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"sort_by must be one of: {', '.join(SORT_FIELDS)}", field="sort_by")
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be asc or desc", field="sort_order")

    base = select(Material).where(Material.approval_status == ApprovalStatus.approved)
    base = _apply_filter(base, material_filter)
    result = await db.execute(base.order_by(desc(Material.upload_date), desc(Material.id)))
    materials = list(result.scalars().all())

    term = (query or "").strip().lower()
    if term:
        hits = [score_material(material, term) for material in materials]
        hits = [hit for hit in hits if hit.relevance_score > 0]
    else:
        hits = [SearchHit(material=material) for material in materials]

    reverse = sort_order == "desc"
    if sort_by == "relevance":
        hits.sort(key=lambda hit: hit.relevance_score, reverse=reverse)
    elif sort_by == "date":
        hits.sort(key=lambda hit: hit.material.upload_date, reverse=reverse)
    elif sort_by == "title":
        hits.sort(key=lambda hit: hit.material.title.lower(), reverse=reverse)
    elif sort_by == "downloads":
        hits.sort(key=lambda hit: hit.material.download_count, reverse=reverse)

    total = len(hits)
    return hits[offset:offset + limit], total


async def get_lecturer_stats(db: AsyncSession, lecturer: User) -> dict:
    """Uploads, total downloads and pending approvals in the lecturer's scope."""
    result = await db.execute(
        select(func.count(Material.id), func.coalesce(func.sum(Material.download_count), 0))
        .where(Material.uploader_id == lecturer.id)
    )
    uploaded, downloads = result.one()

    scope = resolve_reviewer_scope(lecturer)
    pending = await db.execute(
        select(func.count(Material.id)).where(
            Material.approval_status == ApprovalStatus.pending,
            Material.uploader_role == UserRole.student.value,
            scope.filter_clause(),
        )
    )

    return {
        "materials_uploaded": uploaded or 0,
        "total_downloads": int(downloads or 0),
        "pending_approvals": pending.scalar() or 0,
    }


# ================= COUNTERS =================

async def _bump(db: AsyncSession, material_id: int, column) -> bool:
    result = await db.execute(
        update(Material)
        .where(Material.id == material_id)
        .values(**{column.key: column + 1, "last_accessed": datetime.utcnow()})
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return (result.rowcount or 0) > 0


async def increment_download_count(db: AsyncSession, material_id: int) -> bool:
    """Atomic `download_count = download_count + 1`. False when no such material."""
    return await _bump(db, material_id, Material.download_count)


async def record_view(db: AsyncSession, material_id: int) -> bool:
    return await _bump(db, material_id, Material.views)
