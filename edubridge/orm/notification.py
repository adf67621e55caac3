"""
edubridge/orm/notification.py
In-app notifications for comment and approval events
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from enum import Enum

from edubridge.orm.base import Base


class NotificationKind(str, Enum):
    comment = "comment"
    approval = "approval"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(SQLEnum(NotificationKind), nullable=False, index=True)

    material_id = Column(Integer, ForeignKey("materials.id", ondelete="CASCADE"), nullable=False)
    material_title = Column(String(200), nullable=False)
    subject_code = Column(String(20), nullable=False)
    programme_id = Column(String(20), nullable=False)

    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    actor_name = Column(String(200), nullable=False)

    # comment events
    comment_id = Column(Integer, nullable=True)
    comment_preview = Column(String(110), nullable=True)

    # approval events
    approval_action = Column(String(20), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, kind={self.kind})>"
