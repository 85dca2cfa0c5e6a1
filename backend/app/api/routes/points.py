"""
Points ledger endpoints: credit, balance and history views.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.schemas.ledger import (
    BalanceResponse,
    EarnRequest,
    RedemptionEntryResponse,
    TransactionResponse,
)
from app.services import ledger_service

router = APIRouter(prefix="/points", tags=["Points"])


@router.post("/earn", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def earn_points(
    body: EarnRequest,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit points once the payment gateway has confirmed settlement.
    Replaying the same settlement reference returns the original credit.
    """
    reference = f"settlement:{body.reference}" if body.reference else None
    return await ledger_service.earn(db, subject_id, body.amount, body.description, reference)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    return BalanceResponse(
        subject_id=subject_id,
        balance=await ledger_service.balance_of(db, subject_id),
    )


@router.get("/history", response_model=list[TransactionResponse])
async def get_history(
    limit: int = Query(100, ge=1, le=500),
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.history(db, subject_id, limit)


@router.get("/redemptions", response_model=list[RedemptionEntryResponse])
async def get_redemptions(
    limit: int = Query(100, ge=1, le=500),
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.redemption_history(db, subject_id, limit)
