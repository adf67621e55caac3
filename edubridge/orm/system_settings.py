"""
edubridge/orm/system_settings.py
Single-row store for runtime-editable platform policy
"""
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey, JSON

from edubridge.orm.base import Base

SYSTEM_SETTINGS_ID = 1


class SystemSettings(Base):
    """
    Each group is a JSON object validated by the pydantic models in
    edubridge/schemas/settings_schemas.py. Missing keys fall back to the
    model defaults on read.
    """
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, default=SYSTEM_SETTINGS_ID)
    file_upload = Column(JSON, nullable=False, default=dict)
    comment_files = Column(JSON, nullable=False, default=dict)
    restrictions = Column(JSON, nullable=False, default=dict)
    platform = Column(JSON, nullable=False, default=dict)

    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SystemSettings(updated_by={self.updated_by}, updated_at={self.updated_at})>"
