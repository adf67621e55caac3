"""
edubridge/schemas/material_schemas.py
Request/Response schemas for materials and approvals
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from edubridge.orm.material import MaterialType, ApprovalStatus


class FileDescriptor(BaseModel):
    """
    An already-stored file. Size and type limits come from the system
    settings and are checked by the service, not here.
    """
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int
    file_type: str = Field(..., min_length=1, max_length=100)
    download_url: str = Field(..., min_length=1, max_length=1000)


class MaterialMetadata(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    material_type: MaterialType
    programme_id: str = Field(..., min_length=1, max_length=20)
    semester: int
    subject_code: str = Field(..., min_length=1, max_length=20)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("title cannot be blank")
        return v

    @field_validator("programme_id", "subject_code")
    @classmethod
    def upper_codes(cls, v):
        return v.strip().upper()


class MaterialCreate(BaseModel):
    """POST /api/materials body"""
    metadata: MaterialMetadata
    file: FileDescriptor


class MaterialFilter(BaseModel):
    programme_id: Optional[str] = None
    semester: Optional[int] = None
    subject_code: Optional[str] = None
    material_type: Optional[MaterialType] = None
    uploader_id: Optional[int] = None
    query: Optional[str] = None


class MaterialResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str]
    material_type: MaterialType
    file_name: str
    file_size: int
    file_type: str
    download_url: str
    programme_id: str
    semester: int
    subject_code: str
    subject_name: str
    uploader_id: int
    uploader_name: str
    uploader_role: str
    upload_date: datetime
    approval_status: ApprovalStatus
    approved_by: Optional[int] = None
    approver_name: Optional[str] = None
    approver_role: Optional[str] = None
    approved_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    download_count: int
    views: int
    last_accessed: Optional[datetime] = None


class MaterialSearchResult(MaterialResponse):
    relevance_score: int = 0
    matched_fields: List[str] = Field(default_factory=list)


class MaterialSearchResponse(BaseModel):
    materials: List[MaterialSearchResult]
    total: int


class CounterResponse(BaseModel):
    material_id: int
    updated: bool


class RejectRequest(BaseModel):
    # Emptiness is checked by the approval service (400, not 422)
    reason: str = Field("", max_length=1000)


class ReviewQueueResponse(BaseModel):
    scope: Literal["explicit", "legacy", "unassigned"]
    scope_details: dict
    materials: List[MaterialResponse]


class LecturerStatsResponse(BaseModel):
    materials_uploaded: int
    total_downloads: int
    pending_approvals: int
