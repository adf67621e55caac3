"""
edubridge/orm/admin_action_log.py
Append-only trail of admin mutations
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Index

from edubridge.orm.base import Base


class AdminActionLog(Base):
    """
    Rows are only ever inserted. Written by
    edubridge/services/admin_log.py on a best-effort basis.
    """
    __tablename__ = "admin_action_logs"
    __table_args__ = (
        Index("ix_admin_action_target", "target_type", "target_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    target_type = Column(String(30), nullable=False)
    target_id = Column(String(50), nullable=False)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AdminActionLog(admin_id={self.admin_id}, action='{self.action}', target={self.target_type}:{self.target_id})>"
