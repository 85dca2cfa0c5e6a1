"""
Reward catalog entry. Ledger rows keep their own delta, so editing
cost_points later never changes what past redemptions debited.
"""

from sqlalchemy import CheckConstraint, Column, Integer, String

from app.db.base import Base, TimestampMixin


class Reward(Base, TimestampMixin):
    __tablename__ = "rewards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    image = Column(String(1024), nullable=True)  # opaque asset-store reference
    cost_points = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("cost_points > 0", name="check_reward_cost_positive"),
    )

    def __repr__(self) -> str:
        return f"<Reward(id={self.id}, name={self.name}, cost={self.cost_points})>"
