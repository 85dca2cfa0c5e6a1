"""
Pydantic schemas for plan catalog request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from app.services.term_calculator import Cadence


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    cadence: Cadence
    features: list[str] = Field(default_factory=list)
    is_visible: bool = False


class PlanResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    cadence: Cadence
    features: list[str] = Field(validation_alias=AliasChoices("feature_list", "features"))
    is_visible: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PlanVisibilityUpdate(BaseModel):
    is_visible: bool


class ExpiryPreviewRequest(BaseModel):
    start_date: date
    backdated: bool = False


class ExpiryPreviewResponse(BaseModel):
    plan_id: int
    cadence: Cadence
    start_date: date
    expires_on: Optional[date]
    is_lifetime: bool
