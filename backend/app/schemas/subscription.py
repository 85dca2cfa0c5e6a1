"""
Pydantic schemas for subscriptions.

The unbounded expiry of a lifetime plan never appears as a date on the wire:
it is `expires_on: null` together with `is_lifetime: true`.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from app.services.term_calculator import Cadence, is_unbounded


class SubscriptionCreate(BaseModel):
    plan_id: int
    start_date: date
    backdated: bool = False


class SubscriptionUpdate(BaseModel):
    plan_id: Optional[int] = None
    start_date: Optional[date] = None
    backdated: bool = False


class SubscriptionResponse(BaseModel):
    id: int
    subject_id: int
    plan_id: int
    plan_name: str
    cadence: Cadence
    start_date: date
    expires_on: Optional[date]
    is_lifetime: bool
    backdated: bool
    state: str

    @classmethod
    def from_subscription(cls, subscription, state: str) -> "SubscriptionResponse":
        expiry = subscription.expiry
        lifetime = is_unbounded(expiry)
        return cls(
            id=subscription.id,
            subject_id=subscription.subject_id,
            plan_id=subscription.plan_id,
            plan_name=subscription.plan.name,
            cadence=subscription.plan.cadence,
            start_date=subscription.start_date,
            expires_on=None if lifetime else expiry,
            is_lifetime=lifetime,
            backdated=subscription.backdated,
            state=state,
        )
