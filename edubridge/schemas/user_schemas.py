"""
edubridge/schemas/user_schemas.py
Request/Response schemas for the identity directory

Identifier formats are checked by the identity service so that format
errors come back as 400 responses naming the field.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from edubridge.orm.user import UserRole, VerificationStatus


class StudentRegistration(BaseModel):
    matric_id: str = Field(..., max_length=20)
    full_name: str = Field(..., max_length=200)
    email: str = Field(..., max_length=255)
    phone_number: Optional[str] = Field(None, max_length=20)


class LecturerRegistration(BaseModel):
    employee_id: str = Field(..., max_length=20)
    full_name: str = Field(..., max_length=200)
    email: str = Field(..., max_length=255)
    phone_number: Optional[str] = Field(None, max_length=20)
    department: Optional[str] = Field(None, max_length=100)
    programmes: List[str] = Field(default_factory=list)
    teaching_subjects: List[str] = Field(default_factory=list)


class TeachingAssignmentUpdate(BaseModel):
    teaching_subjects: List[str] = Field(default_factory=list)
    programmes: List[str] = Field(default_factory=list)


class UserRejectRequest(BaseModel):
    reason: str = Field("", max_length=500)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    display_name: str
    phone_number: Optional[str] = None
    role: UserRole
    matric_id: Optional[str] = None
    programme: Optional[str] = None
    entry_year: Optional[str] = None
    session: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    teaching_subjects: List[str] = Field(default_factory=list)
    programmes: List[str] = Field(default_factory=list)
    verification_status: VerificationStatus
    is_active: bool
    created_at: datetime


class TeachingSubjectAuditResponse(BaseModel):
    lecturers_with_drift: int
    missing_subjects: Dict[int, List[str]]
