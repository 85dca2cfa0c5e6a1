"""
Subscription endpoints. Every response carries the derived expiry.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.schemas.subscription import SubscriptionCreate, SubscriptionResponse, SubscriptionUpdate
from app.services.subscription_service import (
    SubscriptionState,
    change_subscription,
    list_memberships,
    list_subscriptions,
    state_of,
    subscribe,
    today,
)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def _respond(subscription, as_of) -> SubscriptionResponse:
    return SubscriptionResponse.from_subscription(subscription, state_of(subscription, as_of).value)


@router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def subscribe_endpoint(
    data: SubscriptionCreate,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    as_of = today()
    subscription = await subscribe(db, subject_id, data, as_of)
    return _respond(subscription, as_of)


@router.get("/", response_model=list[SubscriptionResponse])
async def list_own_subscriptions(
    state: SubscriptionState = Query(SubscriptionState.ALL),
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    as_of = today()
    subscriptions = await list_subscriptions(db, subject_id, state, as_of)
    return [_respond(s, as_of) for s in subscriptions]


@router.get(
    "/memberships",
    response_model=list[SubscriptionResponse],
    dependencies=[Depends(get_current_subject_id)],
)
async def list_memberships_endpoint(
    state: SubscriptionState = Query(SubscriptionState.ACTIVE),
    db: AsyncSession = Depends(get_db),
):
    """Administrative listing of memberships across all members."""
    as_of = today()
    return [_respond(s, as_of) for s in await list_memberships(db, state, as_of)]


@router.patch("/{subscription_id}", response_model=SubscriptionResponse)
async def change_subscription_endpoint(
    subscription_id: int,
    changes: SubscriptionUpdate,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    as_of = today()
    subscription = await change_subscription(db, subscription_id, subject_id, changes, as_of)
    return _respond(subscription, as_of)
