"""
Points ledger tables.

Key design decisions:
- ledger_transactions is append-only; nothing updates or deletes its rows
- Balance is SUM(delta) over a subject's rows, never a stored column
- points_accounts.version is the optimistic-lock token: every append bumps it
  and the new value becomes the transaction's per-subject sequence
- (subject_id, reference) is unique so settlement ids and idempotency keys
  are applied at most once
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from app.db.base import Base, utcnow


class PointsAccount(Base):
    __tablename__ = "points_accounts"

    subject_id = Column(Integer, primary_key=True, autoincrement=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<PointsAccount(subject={self.subject_id}, version={self.version})>"


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(
        Integer, ForeignKey("points_accounts.subject_id"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    delta = Column(Integer, nullable=False)
    reward_id = Column(Integer, ForeignKey("rewards.id"), nullable=True)
    description = Column(String(255), nullable=False, default="")
    reference = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("subject_id", "sequence", name="uq_ledger_subject_sequence"),
        UniqueConstraint("subject_id", "reference", name="uq_ledger_subject_reference"),
        CheckConstraint("delta <> 0", name="check_ledger_delta_non_zero"),
        # Only debits may point at a reward
        CheckConstraint(
            "reward_id IS NULL OR delta < 0", name="check_ledger_reward_only_on_debit"
        ),
        Index("ix_ledger_subject_created", "subject_id", "created_at"),
    )

    @property
    def is_redemption(self) -> bool:
        return self.delta < 0

    def __repr__(self) -> str:
        return f"<LedgerTransaction(id={self.id}, subject={self.subject_id}, delta={self.delta})>"
