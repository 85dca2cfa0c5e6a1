"""
Reward catalog and redemption engine.

A redemption is one ledger debit of the reward's current cost, linked to the
reward and described by its name. The reward lookup and the debit run under
the subject's ledger lock, so a redemption either appends exactly one
transaction or nothing.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InsufficientBalance, RewardNotFound
from app.core.logging import get_logger
from app.core.metrics import record_redemption
from app.models.ledger import LedgerTransaction
from app.models.reward import Reward
from app.schemas.reward import RewardCreate, RewardUpdate
from app.services import ledger_service

logger = get_logger(__name__)


async def create_reward(db: AsyncSession, reward_data: RewardCreate) -> Reward:
    reward = Reward(
        name=reward_data.name,
        image=reward_data.image,
        cost_points=reward_data.cost_points,
    )
    db.add(reward)
    await db.flush()
    await db.refresh(reward)

    logger.info("reward_created", reward_id=reward.id, name=reward.name, cost=reward.cost_points)
    return reward


async def get_reward(db: AsyncSession, reward_id: int) -> Reward:
    result = await db.execute(select(Reward).where(Reward.id == reward_id))
    reward = result.scalar_one_or_none()
    if not reward:
        raise RewardNotFound(reward_id)
    return reward


async def list_rewards(db: AsyncSession) -> List[Reward]:
    result = await db.execute(select(Reward).order_by(Reward.cost_points.asc(), Reward.id.asc()))
    return list(result.scalars().all())


async def update_reward(db: AsyncSession, reward_id: int, changes: RewardUpdate) -> Reward:
    """
    Edit a catalog entry. Past redemptions keep the delta they were recorded
    with, so a new cost only applies to future redemptions.
    """
    reward = await get_reward(db, reward_id)
    for field, value in changes.model_dump(exclude_unset=True).items():
        setattr(reward, field, value)
    await db.flush()
    await db.refresh(reward)

    logger.info("reward_updated", reward_id=reward.id, cost=reward.cost_points)
    return reward


async def redeem_reward(
    db: AsyncSession,
    subject_id: int,
    reward_id: int,
    idempotency_key: Optional[str] = None,
) -> tuple[LedgerTransaction, Reward]:
    """
    Spend a reward's cost from the subject's balance.

    Without an idempotency key each call is a separate attempt. With one, a
    repeated call returns the original transaction and debits nothing.
    """
    reference = f"redeem:{idempotency_key}" if idempotency_key else None

    async with ledger_service.locked_subject(subject_id):
        try:
            reward = await get_reward(db, reward_id)
        except RewardNotFound:
            record_redemption("not_found")
            logger.warning("redemption_rejected", subject_id=subject_id, reward_id=reward_id,
                           reason="reward_not_found")
            raise

        reward_pk, cost, name = reward.id, reward.cost_points, reward.name
        try:
            txn, replayed = await ledger_service.append_transaction(
                db,
                subject_id,
                -cost,
                description=name,
                reward_id=reward_pk,
                reference=reference,
            )
        except InsufficientBalance as e:
            record_redemption("insufficient")
            logger.warning("redemption_rejected", reward_id=reward_id,
                           reason="insufficient_balance", **e.details)
            raise

    # A version retry inside the append rolls back and expires the loaded reward
    await db.refresh(reward)

    if replayed:
        record_redemption("replayed")
        logger.info("reward_redemption_replayed", transaction_id=txn.id,
                    subject_id=subject_id, reward_id=reward_id)
        if txn.reward_id is not None and txn.reward_id != reward_pk:
            reward = await get_reward(db, txn.reward_id)
        return txn, reward

    record_redemption("success")
    logger.info(
        "reward_redeemed",
        transaction_id=txn.id,
        subject_id=subject_id,
        reward_id=reward_pk,
        cost=cost,
    )
    return txn, reward
