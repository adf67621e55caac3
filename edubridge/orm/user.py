"""
edubridge/orm/user.py
Directory record for students, lecturers and admins
"""
from sqlalchemy import Column, Integer, String, Boolean, JSON, Enum as SQLEnum
from enum import Enum

from edubridge.orm.base import TimestampedModel

# Placeholder stored in the legacy single-programme field of staff accounts
LEGACY_PROGRAM_UNSET = "N/A"


class UserRole(str, Enum):
    student = "student"
    lecturer = "lecturer"
    admin = "admin"


class VerificationStatus(str, Enum):
    """Registration review state. Students are approved on registration."""
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class User(TimestampedModel):
    """
    A registered user.

    Students are identified by matric ID and belong to exactly one
    programme. Lecturers are identified by employee ID and carry a
    denormalized list of the subject codes and programmes they teach; the
    approval workflow tests membership in these lists rather than joining
    against the catalog, so admins must keep them consistent with it (see
    identity_service.audit_teaching_subjects).

    `program` is the legacy single-programme field. Older lecturer profiles
    only have this one, set to "N/A" when unknown.
    """
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    phone_number = Column(String(20), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student, index=True)

    # Student identity (derived from matric ID)
    matric_id = Column(String(20), nullable=True, unique=True, index=True)
    programme = Column(String(20), nullable=True, index=True)
    entry_year = Column(String(4), nullable=True)
    session = Column(String(4), nullable=True)

    # Lecturer identity and teaching assignment
    employee_id = Column(String(20), nullable=True, unique=True, index=True)
    department = Column(String(100), nullable=True)
    teaching_subjects = Column(JSON, nullable=False, default=list)
    programmes = Column(JSON, nullable=False, default=list)
    program = Column(String(20), nullable=True)

    # Account state
    verification_status = Column(
        SQLEnum(VerificationStatus),
        nullable=False,
        default=VerificationStatus.pending,
        index=True
    )
    rejection_reason = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student

    @property
    def is_lecturer(self) -> bool:
        return self.role == UserRole.lecturer

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.approved

    @property
    def display_name(self) -> str:
        """e.g. "Ahmad Faiz (DBS 2023)" for students, the full name otherwise."""
        if self.is_student and self.programme and self.entry_year:
            first_name = self.full_name.split(" ")[0]
            return f"{first_name} ({self.programme} {self.entry_year})"
        return self.full_name
