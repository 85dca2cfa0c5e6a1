"""
Plan model: static membership catalog entries.

Plans are reference data. Subscriptions derive their expiry from a plan's
cadence, so a plan's cadence is never edited in place once it exists; admins
only toggle visibility.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Plan(Base, TimestampMixin):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    cadence = Column(String(20), nullable=False)
    features = Column(Text, nullable=False, default="")  # comma separated
    is_visible = Column(Boolean, nullable=False, default=False)

    subscriptions = relationship("Subscription", back_populates="plan")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_plan_price_non_negative"),
        CheckConstraint(
            "cadence IN ('daily', 'weekly', 'monthly', 'yearly', 'lifetime')",
            name="check_plan_cadence",
        ),
    )

    @property
    def feature_list(self) -> list[str]:
        return [f.strip() for f in (self.features or "").split(",") if f.strip()]

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, name={self.name}, cadence={self.cadence})>"
