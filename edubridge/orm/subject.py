"""
edubridge/orm/subject.py
Subjects offered by a programme in a given semester
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from edubridge.orm.base import TimestampedModel


class Subject(TimestampedModel):
    """
    A subject, e.g. DPP20023 INTERNATIONAL BUSINESS, semester 3 of DBS.

    Subject codes are unique within a programme, not globally.
    """
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("programme_id", "code", name="uq_subject_programme_code"),
    )

    code = Column(String(20), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    programme_id = Column(
        String(20),
        ForeignKey("programmes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    semester = Column(Integer, nullable=False, index=True)
    credit_hours = Column(Integer, nullable=False, default=3)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    programme = relationship("Programme", back_populates="subjects")

    def __repr__(self):
        return f"<Subject(code='{self.code}', programme='{self.programme_id}', semester={self.semester})>"
