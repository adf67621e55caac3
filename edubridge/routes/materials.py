"""
edubridge/routes/materials.py
Material store API: upload, browse, search and usage counters
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.config.feature_flags import FeatureFlags
from edubridge.database import get_db
from edubridge.dependencies import get_settings_cache, run_db_operation
from edubridge.errors import AuthorizationError, ErrorCode
from edubridge.orm.material import MaterialType
from edubridge.orm.user import User
from edubridge.rate_limit import limiter, UPLOAD_RATE_LIMIT
from edubridge.schemas.material_schemas import (
    MaterialCreate,
    MaterialFilter,
    MaterialResponse,
    MaterialSearchResult,
    MaterialSearchResponse,
    CounterResponse,
)
from edubridge.security.rbac import get_current_user
from edubridge.services import material_service
from edubridge.services.settings_service import SettingsCache, get_system_policy

router = APIRouter(prefix="/materials", tags=["materials"])
logger = logging.getLogger(__name__)


@router.post("", response_model=MaterialResponse, status_code=201)
@limiter.limit(UPLOAD_RATE_LIMIT)
async def create_material(
    request: Request,
    data: MaterialCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: SettingsCache = Depends(get_settings_cache),
):
    """
    Register an uploaded file as a material.

    Lecturer uploads are approved immediately (while lecturer auto-approval
    is on); student uploads wait for a lecturer.
    """
    return await run_db_operation(
        request, db,
        lambda: material_service.create_material(
            db,
            metadata=data.metadata,
            file=data.file,
            uploader_id=current_user.id,
            uploader_role=current_user.role,
            cache=cache,
        ),
        "create_material",
        idempotent=False,
    )


@router.get("", response_model=List[MaterialResponse])
async def list_materials(
    request: Request,
    programme_id: Optional[str] = None,
    semester: Optional[int] = Query(None, ge=1),
    subject_code: Optional[str] = None,
    material_type: Optional[MaterialType] = None,
    uploader_id: Optional[int] = None,
    q: Optional[str] = Query(None, max_length=200),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Approved materials, newest first."""
    material_filter = MaterialFilter(
        programme_id=programme_id.upper() if programme_id else None,
        semester=semester,
        subject_code=subject_code.upper() if subject_code else None,
        material_type=material_type,
        uploader_id=uploader_id,
        query=q,
    )
    return await run_db_operation(
        request, db,
        lambda: material_service.list_materials(db, material_filter, limit=limit),
        "list_materials",
    )


@router.get("/search", response_model=MaterialSearchResponse)
async def search_materials(
    request: Request,
    q: Optional[str] = Query(None, max_length=200),
    programme_id: Optional[str] = None,
    semester: Optional[int] = Query(None, ge=1),
    subject_code: Optional[str] = None,
    material_type: Optional[MaterialType] = None,
    sort_by: str = "relevance",
    sort_order: str = "desc",
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not FeatureFlags.FEATURE_MATERIAL_SEARCH:
        raise HTTPException(status_code=404, detail="Search is not enabled")

    material_filter = MaterialFilter(
        programme_id=programme_id.upper() if programme_id else None,
        semester=semester,
        subject_code=subject_code.upper() if subject_code else None,
        material_type=material_type,
    )
    hits, total = await run_db_operation(
        request, db,
        lambda: material_service.search_materials(
            db,
            query=q,
            material_filter=material_filter,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        ),
        "search_materials",
    )

    results = []
    for hit in hits:
        result = MaterialSearchResult.model_validate(hit.material)
        result.relevance_score = hit.relevance_score
        result.matched_fields = hit.matched_fields
        results.append(result)
    return MaterialSearchResponse(materials=results, total=total)


@router.get("/popular", response_model=List[MaterialResponse])
async def popular_materials(
    request: Request,
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await run_db_operation(
        request, db,
        lambda: material_service.get_popular_materials(db, limit=limit),
        "get_popular_materials",
    )


@router.get("/mine", response_model=List[MaterialResponse])
async def my_uploads(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Everything the caller uploaded, including pending and rejected."""
    return await run_db_operation(
        request, db,
        lambda: material_service.list_uploads(db, current_user.id),
        "list_uploads",
    )


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    request: Request,
    material_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await run_db_operation(
        request, db,
        lambda: material_service.get_material(db, material_id, viewer=current_user),
        "get_material",
    )


@router.post("/{material_id}/download", response_model=CounterResponse)
async def record_download(
    request: Request,
    material_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: SettingsCache = Depends(get_settings_cache),
):
    async def operation():
        policy = await get_system_policy(db, cache)
        if not policy.platform.enable_file_downloads:
            raise AuthorizationError("File downloads are currently disabled", code=ErrorCode.FORBIDDEN)
        await material_service.get_material(db, material_id, viewer=current_user)
        return await material_service.increment_download_count(db, material_id)

    updated = await run_db_operation(
        request, db, operation, "increment_download_count", idempotent=False
    )
    return CounterResponse(material_id=material_id, updated=updated)


@router.post("/{material_id}/view", response_model=CounterResponse)
async def record_view(
    request: Request,
    material_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    async def operation():
        await material_service.get_material(db, material_id, viewer=current_user)
        return await material_service.record_view(db, material_id)

    updated = await run_db_operation(request, db, operation, "record_view", idempotent=False)
    return CounterResponse(material_id=material_id, updated=updated)
