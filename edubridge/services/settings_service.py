"""
edubridge/services/settings_service.py
System settings: load, cache and update the platform policy

The single system_settings row stores four JSON groups. Reads merge the stored
values over the model defaults, so a fresh database behaves as if the default
policy had been saved.
"""
import logging
import time
from datetime import datetime
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.config.settings import settings
from edubridge.errors import AuthorizationError, ValidationError, ErrorCode
from edubridge.orm.system_settings import SystemSettings, SYSTEM_SETTINGS_ID
from edubridge.orm.user import User
from edubridge.schemas.settings_schemas import (
    SystemPolicy,
    SystemPolicyUpdate,
    FileUploadPolicy,
    CommentFilePolicy,
    UploadRestrictions,
    PlatformSettings,
)
from edubridge.services.admin_log import log_admin_action, AdminAction

logger = logging.getLogger(__name__)

SETTINGS_GROUPS = {
    "file_upload": FileUploadPolicy,
    "comment_files": CommentFilePolicy,
    "restrictions": UploadRestrictions,
    "platform": PlatformSettings,
}


class SettingsCache:
    """
    Per-process cache of the effective SystemPolicy.

    Held on app.state and passed to the service functions; cleared on update.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        self.ttl_seconds = settings.SETTINGS_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._policy: Optional[SystemPolicy] = None
        self._loaded_at: float = 0.0

    def get(self) -> Optional[SystemPolicy]:
        if self._policy is None:
            return None
        if self._clock() - self._loaded_at >= self.ttl_seconds:
            self._policy = None
            return None
        return self._policy

    def set(self, policy: SystemPolicy):
        self._policy = policy
        self._loaded_at = self._clock()

    def clear(self):
        self._policy = None
        self._loaded_at = 0.0


def _policy_from_row(row: Optional[SystemSettings]) -> SystemPolicy:
    if row is None:
        return SystemPolicy()

    groups = {}
    for name, model in SETTINGS_GROUPS.items():
        stored = getattr(row, name) or {}
        try:
            groups[name] = model(**stored)
        except PydanticValidationError as e:
            logger.error(f"Stored settings group '{name}' is invalid, using defaults: {e}")
            groups[name] = model()

    return SystemPolicy(**groups, updated_by=row.updated_by, updated_at=row.updated_at)


async def get_system_policy(
    db: AsyncSession,
    cache: Optional[SettingsCache] = None,
) -> SystemPolicy:
    """Effective system policy, served from `cache` while fresh."""
    if cache is not None:
        cached = cache.get()
        if cached is not None:
            return cached

    result = await db.execute(
        select(SystemSettings).where(SystemSettings.id == SYSTEM_SETTINGS_ID)
    )
    policy = _policy_from_row(result.scalar_one_or_none())

    if cache is not None:
        cache.set(policy)
    return policy


async def update_system_policy(
    db: AsyncSession,
    admin: User,
    update: SystemPolicyUpdate,
    cache: Optional[SettingsCache] = None,
) -> SystemPolicy:
    """
    Replace the supplied settings groups. Admin only.

    Raises:
        AuthorizationError: actor is not an admin
        ValidationError: nothing to update
    """
    if not admin.is_admin:
        raise AuthorizationError("Only admins can change system settings", code=ErrorCode.ROLE_NOT_ALLOWED)

    changed = {
        name: getattr(update, name)
        for name in SETTINGS_GROUPS
        if getattr(update, name) is not None
    }
    if not changed:
        raise ValidationError("No settings groups supplied", code=ErrorCode.MISSING_FIELD)

    result = await db.execute(
        select(SystemSettings).where(SystemSettings.id == SYSTEM_SETTINGS_ID)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = SystemSettings(id=SYSTEM_SETTINGS_ID)
        db.add(row)

    for name, group in changed.items():
        setattr(row, name, group.model_dump())
    row.updated_by = admin.id
    row.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(row)

    if cache is not None:
        cache.clear()

    logger.info(f"System settings updated by admin {admin.id}: {sorted(changed)}")
    await log_admin_action(
        db,
        admin_id=admin.id,
        action=AdminAction.UPDATE_SETTINGS,
        target_type="system_settings",
        target_id=SYSTEM_SETTINGS_ID,
        details={"groups": sorted(changed)},
    )

    return _policy_from_row(row)
