"""
ORM models package
"""
from edubridge.orm.base import Base, TimestampedModel
from edubridge.orm.user import User, UserRole, VerificationStatus, LEGACY_PROGRAM_UNSET
from edubridge.orm.programme import Programme
from edubridge.orm.subject import Subject
from edubridge.orm.material import Material, MaterialType, ApprovalStatus
from edubridge.orm.comment import Comment
from edubridge.orm.notification import Notification, NotificationKind
from edubridge.orm.system_settings import SystemSettings, SYSTEM_SETTINGS_ID
from edubridge.orm.admin_action_log import AdminActionLog

__all__ = [
    "Base",
    "TimestampedModel",
    "User",
    "UserRole",
    "VerificationStatus",
    "LEGACY_PROGRAM_UNSET",
    "Programme",
    "Subject",
    "Material",
    "MaterialType",
    "ApprovalStatus",
    "Comment",
    "Notification",
    "NotificationKind",
    "SystemSettings",
    "SYSTEM_SETTINGS_ID",
    "AdminActionLog",
]
