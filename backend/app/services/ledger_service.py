"""
Points ledger with concurrency-safe redemption.

CONCURRENCY STRATEGY: Per-subject critical section + Optimistic Locking
=======================================================================

Problem:
  Two redemptions for the same member arrive together. Both read balance=50,
  both decide 30 is affordable, both append. Result: balance -10.

Solution:
  Within one process, every append for a subject runs under that subject's
  lock (KeyedLock), so the balance check and the append are one unit.

  Across processes, each subject owns a points_accounts row whose `version`
  is the optimistic-lock token:

  1. Read the account's current version
  2. Compute the balance as SUM(delta) over the subject's transactions
  3. UPDATE points_accounts SET version = version + 1
     WHERE subject_id = :subject AND version = :current_version
  4. If rows_affected == 0, another writer appended first -> rollback, retry
  5. Insert the transaction with sequence = new version and commit

  The UNIQUE (subject_id, sequence) constraint is the final safety net.

Balance is never stored. It is always recomputed from the log, so the stored
history and the reported balance cannot drift apart.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import InsufficientBalance, InvalidAmount, Unavailable
from app.core.locks import KeyedLock
from app.core.logging import get_logger
from app.core.metrics import ledger_latency, record_ledger_retry, record_ledger_write
from app.models.ledger import LedgerTransaction, PointsAccount
from app.models.reward import Reward

logger = get_logger(__name__)
settings = get_settings()

_subject_locks = KeyedLock()


@dataclass(frozen=True)
class RedemptionEntry:
    id: int
    date: datetime
    description: str
    points: int
    reward_id: Optional[int]
    reward_name: Optional[str]


@asynccontextmanager
async def locked_subject(subject_id: int) -> AsyncIterator[None]:
    """Serialise ledger writes for one subject. Not reentrant."""
    async with _subject_locks.hold(("ledger", subject_id)):
        yield


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)


async def balance_of(db: AsyncSession, subject_id: int) -> int:
    """Sum of every delta the subject has ever recorded."""
    total = await db.scalar(
        select(func.coalesce(func.sum(LedgerTransaction.delta), 0)).where(
            LedgerTransaction.subject_id == subject_id
        )
    )
    return int(total or 0)


async def _ensure_account(db: AsyncSession, subject_id: int) -> None:
    existing = await db.scalar(
        select(PointsAccount.subject_id).where(PointsAccount.subject_id == subject_id)
    )
    if existing is not None:
        return
    db.add(PointsAccount(subject_id=subject_id, version=0))
    try:
        await db.flush()
    except IntegrityError:
        # Created concurrently by another process; nothing else is pending yet
        await db.rollback()


async def _find_by_reference(
    db: AsyncSession, subject_id: int, reference: str
) -> Optional[LedgerTransaction]:
    result = await db.execute(
        select(LedgerTransaction).where(
            LedgerTransaction.subject_id == subject_id,
            LedgerTransaction.reference == reference,
        )
    )
    return result.scalar_one_or_none()


async def _claim_next_sequence(db: AsyncSession, subject_id: int) -> Optional[int]:
    current_version = await db.scalar(
        select(PointsAccount.version).where(PointsAccount.subject_id == subject_id)
    )
    result = await db.execute(
        update(PointsAccount)
        .where(
            PointsAccount.subject_id == subject_id,
            PointsAccount.version == current_version,
        )
        .values(version=PointsAccount.version + 1)
    )
    if result.rowcount == 0:
        return None
    return current_version + 1


async def append_transaction(
    db: AsyncSession,
    subject_id: int,
    delta: int,
    *,
    description: str = "",
    reward_id: Optional[int] = None,
    reference: Optional[str] = None,
) -> tuple[LedgerTransaction, bool]:
    """
    Append one transaction and commit it. Caller must hold locked_subject().

    Debits are checked against the current balance inside the same unit.
    Returns (transaction, replayed); replayed is True when `reference` was
    already applied and the earlier transaction is returned unchanged.
    """
    try:
        with ledger_latency.time():
            for attempt in range(1, settings.LEDGER_MAX_RETRY_ATTEMPTS + 1):
                await _ensure_account(db, subject_id)

                if reference is not None:
                    existing = await _find_by_reference(db, subject_id, reference)
                    if existing is not None:
                        await db.commit()
                        return existing, True

                if delta < 0:
                    balance = await balance_of(db, subject_id)
                    if -delta > balance:
                        await db.rollback()
                        raise InsufficientBalance(subject_id, -delta, balance)

                sequence = await _claim_next_sequence(db, subject_id)
                if sequence is None:
                    logger.info(
                        "ledger_retry",
                        subject_id=subject_id,
                        attempt=attempt,
                        reason="version_conflict",
                    )
                    record_ledger_retry()
                    await db.rollback()
                    continue

                txn = LedgerTransaction(
                    subject_id=subject_id,
                    sequence=sequence,
                    delta=delta,
                    reward_id=reward_id,
                    description=description,
                    reference=reference,
                )
                db.add(txn)
                try:
                    await db.flush()
                except IntegrityError:
                    # Lost a sequence or reference race to another process
                    logger.info(
                        "ledger_retry",
                        subject_id=subject_id,
                        attempt=attempt,
                        reason="unique_conflict",
                    )
                    record_ledger_retry()
                    await db.rollback()
                    continue

                await db.commit()
                record_ledger_write("earn" if delta > 0 else "redeem")
                return txn, False
    except OperationalError as e:
        await db.rollback()
        logger.error("ledger_store_unavailable", subject_id=subject_id, error=str(e))
        raise Unavailable() from e

    logger.error("ledger_retries_exhausted", subject_id=subject_id)
    raise Unavailable("Ledger is busy. Please try again.")


async def earn(
    db: AsyncSession,
    subject_id: int,
    amount: int,
    description: str = "",
    reference: Optional[str] = None,
) -> LedgerTransaction:
    """
    Credit points. A settlement `reference` is applied at most once per
    subject; replaying it returns the original transaction.
    """
    _check_amount(amount)
    async with locked_subject(subject_id):
        txn, replayed = await append_transaction(
            db, subject_id, amount, description=description, reference=reference
        )

    logger.info(
        "points_earned" if not replayed else "points_earn_replayed",
        transaction_id=txn.id,
        subject_id=subject_id,
        amount=amount,
        reference=reference,
    )
    return txn


async def redeem(
    db: AsyncSession,
    subject_id: int,
    amount: int,
    reward_id: Optional[int] = None,
    description: str = "",
    reference: Optional[str] = None,
) -> LedgerTransaction:
    """Debit points, failing with InsufficientBalance and appending nothing if unaffordable."""
    _check_amount(amount)
    async with locked_subject(subject_id):
        try:
            txn, _ = await append_transaction(
                db,
                subject_id,
                -amount,
                description=description,
                reward_id=reward_id,
                reference=reference,
            )
        except InsufficientBalance as e:
            logger.warning("redemption_rejected", subject_id=subject_id, **e.details)
            raise

    logger.info(
        "points_redeemed",
        transaction_id=txn.id,
        subject_id=subject_id,
        amount=amount,
        reward_id=reward_id,
    )
    return txn


def _recent_first(query, limit: Optional[int]):
    return query.order_by(
        LedgerTransaction.created_at.desc(), LedgerTransaction.sequence.desc()
    ).limit(limit or settings.MAX_REDEMPTION_HISTORY)


async def history(
    db: AsyncSession, subject_id: int, limit: Optional[int] = None
) -> List[LedgerTransaction]:
    """The subject's most recent transactions, oldest first."""
    result = await db.execute(
        _recent_first(
            select(LedgerTransaction).where(LedgerTransaction.subject_id == subject_id),
            limit,
        )
    )
    return list(reversed(result.scalars().all()))


def redemptions_from(
    rows: Iterable[Tuple[LedgerTransaction, Optional[str]]]
) -> List[RedemptionEntry]:
    """Keep only debits, reported as positive point amounts, in input order."""
    return [
        RedemptionEntry(
            id=txn.id,
            date=txn.created_at,
            description=txn.description,
            points=abs(txn.delta),
            reward_id=txn.reward_id,
            reward_name=reward_name,
        )
        for txn, reward_name in rows
        if txn.is_redemption
    ]


async def redemption_history(
    db: AsyncSession, subject_id: int, limit: Optional[int] = None
) -> List[RedemptionEntry]:
    """The subject's most recent redemptions, oldest first. The cap counts debits only."""
    result = await db.execute(
        _recent_first(
            select(LedgerTransaction, Reward.name)
            .outerjoin(Reward, Reward.id == LedgerTransaction.reward_id)
            .where(LedgerTransaction.subject_id == subject_id, LedgerTransaction.delta < 0),
            limit,
        )
    )
    return redemptions_from(reversed(result.all()))
