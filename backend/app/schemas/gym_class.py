"""
Pydantic schemas for the class catalog.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GymClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    duration_minutes: int = Field(60, gt=0, le=600)
    difficulty: Optional[str] = Field(None, max_length=20)


class GymClassResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    duration_minutes: int
    difficulty: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
