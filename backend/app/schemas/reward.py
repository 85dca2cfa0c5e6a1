"""
Pydantic schemas for the reward catalog.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RewardCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    image: Optional[str] = Field(None, max_length=1024)
    cost_points: int = Field(..., gt=0)


class RewardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    image: Optional[str] = Field(None, max_length=1024)
    cost_points: Optional[int] = Field(None, gt=0)


class RewardResponse(BaseModel):
    id: int
    name: str
    image: Optional[str]
    cost_points: int
    created_at: datetime

    model_config = {"from_attributes": True}
