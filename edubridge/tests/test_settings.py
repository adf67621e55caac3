"""
System policy loading, caching and updates
"""
import pytest

from edubridge.errors import AuthorizationError, ValidationError
from edubridge.orm.system_settings import SystemSettings, SYSTEM_SETTINGS_ID
from edubridge.schemas.settings_schemas import (
    FileUploadPolicy,
    PlatformSettings,
    SystemPolicy,
    SystemPolicyUpdate,
    MB,
)
from edubridge.services.admin_log import list_admin_actions, AdminAction
from edubridge.services.settings_service import SettingsCache, get_system_policy, update_system_policy


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestSettingsCache:

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = SettingsCache(ttl_seconds=60, clock=clock)
        cache.set(SystemPolicy())

        clock.now = 59
        assert cache.get() is not None
        clock.now = 60
        assert cache.get() is None

    def test_clear(self):
        cache = SettingsCache(ttl_seconds=60)
        cache.set(SystemPolicy())
        cache.clear()
        assert cache.get() is None


class TestSystemPolicy:

    @pytest.mark.asyncio
    async def test_defaults_without_stored_row(self, db_session):
        policy = await get_system_policy(db_session)

        assert policy.file_upload.max_file_size == 10 * MB
        assert policy.comment_files.max_files == 3
        assert policy.restrictions.lecturer_auto_approval is True
        assert policy.platform.enable_comments is True
        assert policy.updated_by is None

    @pytest.mark.asyncio
    async def test_update_replaces_only_given_groups(self, db_session, admin):
        policy = await update_system_policy(
            db_session, admin, SystemPolicyUpdate(file_upload=FileUploadPolicy(max_file_size=20 * MB))
        )

        assert policy.file_upload.max_file_size == 20 * MB
        assert policy.platform.enable_comments is True
        assert policy.updated_by == admin.id

        reloaded = await get_system_policy(db_session)
        assert reloaded.file_upload.max_file_size == 20 * MB

        entries = await list_admin_actions(db_session, target_type="system_settings")
        assert entries[0].action == AdminAction.UPDATE_SETTINGS
        assert entries[0].details == {"groups": ["file_upload"]}

    @pytest.mark.asyncio
    async def test_update_clears_cache(self, db_session, admin):
        cache = SettingsCache(ttl_seconds=600)
        assert (await get_system_policy(db_session, cache)).platform.maintenance_mode is False

        await update_system_policy(
            db_session, admin, SystemPolicyUpdate(platform=PlatformSettings(maintenance_mode=True)), cache
        )
        assert (await get_system_policy(db_session, cache)).platform.maintenance_mode is True

    @pytest.mark.asyncio
    async def test_cached_policy_served_until_cleared(self, db_session, admin):
        cache = SettingsCache(ttl_seconds=600)
        await get_system_policy(db_session, cache)

        # updated without the cache
        await update_system_policy(
            db_session, admin, SystemPolicyUpdate(platform=PlatformSettings(enable_comments=False))
        )
        assert (await get_system_policy(db_session, cache)).platform.enable_comments is True

        cache.clear()
        assert (await get_system_policy(db_session, cache)).platform.enable_comments is False

    @pytest.mark.asyncio
    async def test_invalid_stored_group_falls_back(self, db_session):
        db_session.add(SystemSettings(
            id=SYSTEM_SETTINGS_ID,
            file_upload={"max_file_size": -5},
            comment_files={"max_files": 1},
            restrictions={},
            platform={},
        ))
        await db_session.commit()

        policy = await get_system_policy(db_session)
        assert policy.file_upload.max_file_size == 10 * MB
        assert policy.comment_files.max_files == 1

    @pytest.mark.asyncio
    async def test_non_admin_refused(self, db_session, lecturer):
        with pytest.raises(AuthorizationError):
            await update_system_policy(
                db_session, lecturer, SystemPolicyUpdate(platform=PlatformSettings())
            )

    @pytest.mark.asyncio
    async def test_empty_update(self, db_session, admin):
        with pytest.raises(ValidationError):
            await update_system_policy(db_session, admin, SystemPolicyUpdate())

    @pytest.mark.asyncio
    async def test_maintenance_blocks_uploads(self, db_session, admin, upload, student):
        await update_system_policy(
            db_session, admin, SystemPolicyUpdate(platform=PlatformSettings(maintenance_mode=True))
        )
        with pytest.raises(AuthorizationError):
            await upload(student)
