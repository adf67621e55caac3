"""
edubridge/orm/programme.py
Diploma programmes (top of the academic catalog)
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from edubridge.orm.base import Base


class Programme(Base):
    """
    A programme such as "DBS" (Diploma in Business Studies).

    Reference data: rarely mutated and never deleted. Retire a programme by
    clearing `is_active`.
    """
    __tablename__ = "programmes"

    id = Column(String(20), primary_key=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    department = Column(String(100), nullable=False)
    total_semesters = Column(Integer, nullable=False, default=5)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    subjects = relationship(
        "Subject",
        back_populates="programme",
        order_by="Subject.code"
    )

    def __repr__(self):
        return f"<Programme(id='{self.id}', name='{self.name}')>"
