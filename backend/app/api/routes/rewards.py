"""
Reward catalog and redemption endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.schemas.ledger import RedemptionResponse, TransactionResponse
from app.schemas.reward import RewardCreate, RewardResponse, RewardUpdate
from app.services import ledger_service
from app.services.cache_service import get_cached_catalog, invalidate_catalog, set_cached_catalog
from app.services.reward_service import (
    create_reward,
    get_reward,
    list_rewards,
    redeem_reward,
    update_reward,
)

router = APIRouter(prefix="/rewards", tags=["Rewards"])


@router.get("/", response_model=list[RewardResponse])
async def list_rewards_endpoint(db: AsyncSession = Depends(get_db)):
    cached = await get_cached_catalog("rewards")
    if cached is not None:
        return [RewardResponse.model_validate(r) for r in cached]

    rewards = [RewardResponse.model_validate(r) for r in await list_rewards(db)]
    await set_cached_catalog("rewards", "all", [r.model_dump(mode="json") for r in rewards])
    return rewards


@router.post(
    "/",
    response_model=RewardResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_subject_id)],
)
async def create_reward_endpoint(
    reward_data: RewardCreate,
    db: AsyncSession = Depends(get_db),
):
    reward = await create_reward(db, reward_data)
    await invalidate_catalog("rewards")
    return reward


@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward_endpoint(reward_id: int, db: AsyncSession = Depends(get_db)):
    return await get_reward(db, reward_id)


@router.patch(
    "/{reward_id}",
    response_model=RewardResponse,
    dependencies=[Depends(get_current_subject_id)],
)
async def update_reward_endpoint(
    reward_id: int,
    changes: RewardUpdate,
    db: AsyncSession = Depends(get_db),
):
    reward = await update_reward(db, reward_id, changes)
    await invalidate_catalog("rewards")
    return reward


@router.post("/{reward_id}/redeem", response_model=RedemptionResponse)
async def redeem_reward_endpoint(
    reward_id: int,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=100),
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Spend points on a reward.

    Returns 422 with error_code InsufficientBalance when the balance cannot
    cover the cost, and 404 RewardNotFound for a stale catalog entry.
    """
    txn, reward = await redeem_reward(db, subject_id, reward_id, idempotency_key)
    return RedemptionResponse(
        transaction=TransactionResponse.model_validate(txn),
        reward=RewardResponse.model_validate(reward),
        balance=await ledger_service.balance_of(db, subject_id),
    )
