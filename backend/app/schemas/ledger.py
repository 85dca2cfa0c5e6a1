"""
Pydantic schemas for points ledger requests and views.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.reward import RewardResponse


class EarnRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str = Field("", max_length=255)
    # Settlement confirmation id from the payment gateway
    reference: Optional[str] = Field(None, min_length=1, max_length=100)


class TransactionResponse(BaseModel):
    id: int
    subject_id: int
    delta: int
    reward_id: Optional[int]
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    subject_id: int
    balance: int


class RedemptionEntryResponse(BaseModel):
    id: int
    date: datetime
    description: str
    points: int
    reward_id: Optional[int]
    reward_name: Optional[str]

    model_config = {"from_attributes": True}


class RedemptionResponse(BaseModel):
    transaction: TransactionResponse
    reward: RewardResponse
    balance: int
