"""
edubridge/schemas/settings_schemas.py
Runtime-editable platform policy
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

MB = 1024 * 1024

MATERIAL_FILE_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
]

COMMENT_FILE_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/jpg",
    "image/png",
]


class FileUploadPolicy(BaseModel):
    """Limits on material uploads"""
    max_file_size: int = Field(10 * MB, gt=0)
    allowed_file_types: List[str] = Field(default_factory=lambda: list(MATERIAL_FILE_TYPES))
    max_file_name_length: int = Field(100, gt=0)


class CommentFilePolicy(BaseModel):
    """Limits on comment attachments"""
    max_file_size: int = Field(5 * MB, gt=0)
    max_files: int = Field(3, ge=0)
    allowed_file_types: List[str] = Field(default_factory=lambda: list(COMMENT_FILE_TYPES))


class UploadRestrictions(BaseModel):
    students_can_only_upload_notes: bool = False
    students_can_only_upload_to_own_programme: bool = False
    lecturer_auto_approval: bool = True


class PlatformSettings(BaseModel):
    platform_name: str = "EduBridge"
    admin_email: str = "admin@polinilai.edu.my"
    maintenance_mode: bool = False
    enable_file_downloads: bool = True
    enable_comments: bool = True
    enable_notifications: bool = True


class SystemPolicy(BaseModel):
    """Effective settings: stored values merged over defaults"""
    file_upload: FileUploadPolicy = Field(default_factory=FileUploadPolicy)
    comment_files: CommentFilePolicy = Field(default_factory=CommentFilePolicy)
    restrictions: UploadRestrictions = Field(default_factory=UploadRestrictions)
    platform: PlatformSettings = Field(default_factory=PlatformSettings)
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None


class SystemPolicyUpdate(BaseModel):
    """Partial update; omitted groups are left unchanged"""
    model_config = ConfigDict(extra="forbid")

    file_upload: Optional[FileUploadPolicy] = None
    comment_files: Optional[CommentFilePolicy] = None
    restrictions: Optional[UploadRestrictions] = None
    platform: Optional[PlatformSettings] = None


class UploadPolicyResponse(BaseModel):
    """What clients need to pre-check files before uploading"""
    file_upload: FileUploadPolicy
    comment_files: CommentFilePolicy
    restrictions: UploadRestrictions
    enable_comments: bool
    enable_file_downloads: bool
