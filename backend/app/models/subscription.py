"""
Subscription model.

There is deliberately no expiry column: the expiry is a function of
(start_date, plan.cadence) and is recomputed on read.
"""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin
from app.services.term_calculator import Expiry, term_end


class Subscription(Base, TimestampMixin):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    backdated = Column(Boolean, nullable=False, default=False)

    plan = relationship("Plan", back_populates="subscriptions", lazy="joined")

    @property
    def expiry(self) -> Expiry:
        return term_end(self.start_date, self.plan.cadence)

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, subject={self.subject_id}, plan={self.plan_id})>"
