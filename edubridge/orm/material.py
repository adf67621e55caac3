"""
edubridge/orm/material.py
Uploaded academic materials and their approval state
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum, Index
from enum import Enum

from edubridge.orm.base import Base


class MaterialType(str, Enum):
    note = "note"
    exam_paper = "exam_paper"
    answer_scheme = "answer_scheme"


class ApprovalStatus(str, Enum):
    """
    pending -> approved
    pending -> rejected

    approved and rejected are terminal.
    """
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Material(Base):
    """
    One uploaded file plus its academic placement and review trail.

    The blob lives in external storage; only its descriptor is kept here.
    `subject_name`, `uploader_name` and `approver_name` are denormalized
    copies taken at write time.
    """
    __tablename__ = "materials"
    __table_args__ = (
        Index("ix_materials_status_subject", "approval_status", "subject_code"),
        Index("ix_materials_status_programme", "approval_status", "programme_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    material_type = Column(SQLEnum(MaterialType), nullable=False, index=True)

    # File descriptor
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(100), nullable=False)
    download_url = Column(String(1000), nullable=False)

    # Academic placement
    programme_id = Column(String(20), ForeignKey("programmes.id"), nullable=False, index=True)
    semester = Column(Integer, nullable=False)
    subject_code = Column(String(20), nullable=False, index=True)
    subject_name = Column(String(200), nullable=False)

    # Uploader
    uploader_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    uploader_name = Column(String(200), nullable=False)
    uploader_role = Column(String(20), nullable=False)
    upload_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Review trail
    approval_status = Column(
        SQLEnum(ApprovalStatus),
        nullable=False,
        default=ApprovalStatus.pending,
        index=True
    )
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approver_name = Column(String(200), nullable=True)
    approver_role = Column(String(20), nullable=True)
    approved_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Usage counters (monotonic)
    download_count = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    last_accessed = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Material(id={self.id}, title='{self.title}', status={self.approval_status})>"

    @property
    def is_pending(self) -> bool:
        return self.approval_status == ApprovalStatus.pending

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.approved
