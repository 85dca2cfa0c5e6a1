"""
Class catalog: the things members book occurrences of.
"""

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class GymClass(Base, TimestampMixin):
    __tablename__ = "gym_classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    difficulty = Column(String(20), nullable=True)

    bookings = relationship("Booking", back_populates="gym_class")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_class_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<GymClass(id={self.id}, name={self.name})>"
