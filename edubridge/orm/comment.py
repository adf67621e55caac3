"""
edubridge/orm/comment.py
Comments on materials
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON

from edubridge.orm.base import Base


class Comment(Base):
    """
    A comment with up to three small attachments.

    Comments are never edited. Only the author may delete one.
    `attachments` holds a list of file descriptors
    ({file_name, file_size, file_type, download_url}).
    """
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    material_id = Column(
        Integer,
        ForeignKey("materials.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    content = Column(Text, nullable=False)
    attachments = Column(JSON, nullable=False, default=list)

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_name = Column(String(200), nullable=False)
    author_role = Column(String(20), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Comment(id={self.id}, material_id={self.material_id}, author_id={self.author_id})>"
