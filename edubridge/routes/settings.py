"""
edubridge/routes/settings.py
System settings API
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.database import get_db
from edubridge.dependencies import get_settings_cache, run_db_operation
from edubridge.orm.user import User
from edubridge.schemas.settings_schemas import SystemPolicy, SystemPolicyUpdate, UploadPolicyResponse
from edubridge.security.rbac import get_current_user, require_admin
from edubridge.services import settings_service
from edubridge.services.settings_service import SettingsCache

router = APIRouter(prefix="/settings", tags=["settings"])
logger = logging.getLogger(__name__)


@router.get("/upload-policy", response_model=UploadPolicyResponse)
async def upload_policy(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cache: SettingsCache = Depends(get_settings_cache),
):
    """Limits clients should check before uploading files."""
    policy = await run_db_operation(
        request, db,
        lambda: settings_service.get_system_policy(db, cache),
        "get_system_policy",
    )
    return UploadPolicyResponse(
        file_upload=policy.file_upload,
        comment_files=policy.comment_files,
        restrictions=policy.restrictions,
        enable_comments=policy.platform.enable_comments,
        enable_file_downloads=policy.platform.enable_file_downloads,
    )


@router.get("", response_model=SystemPolicy)
async def get_settings(
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    cache: SettingsCache = Depends(get_settings_cache),
):
    return await run_db_operation(
        request, db,
        lambda: settings_service.get_system_policy(db, cache),
        "get_system_policy",
    )


@router.patch("", response_model=SystemPolicy)
async def update_settings(
    request: Request,
    data: SystemPolicyUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    cache: SettingsCache = Depends(get_settings_cache),
):
    return await run_db_operation(
        request, db,
        lambda: settings_service.update_system_policy(db, admin, data, cache),
        "update_system_policy",
    )
