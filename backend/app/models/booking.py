"""
Booking model representing a member's registration for one class occurrence.

Key design decisions:
- Partial unique index on (subject_id, class_id, occurrence_time) restricted to
  status = 'scheduled': at most one active booking per triple, while archived
  rows never block a new one
- Status field allows archiving without deleting records
"""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    ARCHIVED = "archived"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("gym_classes.id"), nullable=False, index=True)
    occurrence_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value)

    gym_class = relationship("GymClass", back_populates="bookings")

    __table_args__ = (
        Index(
            "uq_active_booking",
            "subject_id",
            "class_id",
            "occurrence_time",
            unique=True,
            postgresql_where=text("status = 'scheduled'"),
            sqlite_where=text("status = 'scheduled'"),
        ),
        CheckConstraint("status IN ('scheduled', 'archived')", name="check_booking_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, subject={self.subject_id}, class={self.class_id}, "
            f"at={self.occurrence_time}, status={self.status})>"
        )
