"""
Subscription service.

Expiry is never persisted. Every read derives it from (start_date, cadence)
through the term calculator, and every write that touches either input
re-validates the start date the same way a new subscription does.
"""

import enum
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import SubscriptionNotFound
from app.core.logging import get_logger
from app.models.subscription import Subscription
from app.schemas.subscription import SubscriptionCreate, SubscriptionUpdate
from app.services.plan_service import get_plan
from app.services.term_calculator import compute_expiry, is_active_on

logger = get_logger(__name__)


class SubscriptionState(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    EXPIRED = "expired"
    ALL = "all"


def today() -> date:
    return datetime.now(timezone.utc).date()


def state_of(subscription: Subscription, as_of: date) -> SubscriptionState:
    if as_of < subscription.start_date:
        return SubscriptionState.UPCOMING
    if is_active_on(subscription.start_date, subscription.expiry, as_of):
        return SubscriptionState.ACTIVE
    return SubscriptionState.EXPIRED


async def subscribe(
    db: AsyncSession,
    subject_id: int,
    data: SubscriptionCreate,
    as_of: Optional[date] = None,
) -> Subscription:
    as_of = as_of or today()
    plan = await get_plan(db, data.plan_id)
    expiry = compute_expiry(data.start_date, plan.cadence, as_of=as_of, backdated=data.backdated)

    subscription = Subscription(
        subject_id=subject_id,
        plan_id=plan.id,
        start_date=data.start_date,
        backdated=data.backdated,
    )
    subscription.plan = plan
    db.add(subscription)
    await db.flush()

    logger.info(
        "subscription_created",
        subscription_id=subscription.id,
        subject_id=subject_id,
        plan_id=plan.id,
        start_date=data.start_date.isoformat(),
        expires=str(expiry),
    )
    return subscription


async def get_subscription(
    db: AsyncSession, subscription_id: int, subject_id: Optional[int] = None
) -> Subscription:
    query = select(Subscription).where(Subscription.id == subscription_id)
    if subject_id is not None:
        query = query.where(Subscription.subject_id == subject_id)
    result = await db.execute(query)
    subscription = result.scalar_one_or_none()
    if not subscription:
        raise SubscriptionNotFound(subscription_id)
    return subscription


async def change_subscription(
    db: AsyncSession,
    subscription_id: int,
    subject_id: int,
    changes: SubscriptionUpdate,
    as_of: Optional[date] = None,
) -> Subscription:
    """Move a subscription to another plan and/or start date; expiry follows."""
    as_of = as_of or today()
    subscription = await get_subscription(db, subscription_id, subject_id)

    plan = subscription.plan
    if changes.plan_id is not None and changes.plan_id != subscription.plan_id:
        plan = await get_plan(db, changes.plan_id)

    start_date = subscription.start_date
    backdated = subscription.backdated
    if changes.start_date is not None and changes.start_date != subscription.start_date:
        start_date = changes.start_date
        backdated = changes.backdated
        compute_expiry(start_date, plan.cadence, as_of=as_of, backdated=backdated)

    subscription.plan = plan
    subscription.plan_id = plan.id
    subscription.start_date = start_date
    subscription.backdated = backdated
    await db.flush()

    logger.info(
        "subscription_changed",
        subscription_id=subscription.id,
        plan_id=plan.id,
        start_date=start_date.isoformat(),
    )
    return subscription


def _filter_state(
    subscriptions: List[Subscription], state: SubscriptionState, as_of: date
) -> List[Subscription]:
    if state is SubscriptionState.ALL:
        return subscriptions
    return [s for s in subscriptions if state_of(s, as_of) is state]


async def list_subscriptions(
    db: AsyncSession,
    subject_id: int,
    state: SubscriptionState = SubscriptionState.ALL,
    as_of: Optional[date] = None,
) -> List[Subscription]:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.subject_id == subject_id)
        .order_by(Subscription.start_date.asc(), Subscription.id.asc())
    )
    return _filter_state(list(result.scalars().all()), state, as_of or today())


async def list_memberships(
    db: AsyncSession,
    state: SubscriptionState = SubscriptionState.ACTIVE,
    as_of: Optional[date] = None,
) -> List[Subscription]:
    """Admin view across every subject."""
    result = await db.execute(
        select(Subscription).order_by(Subscription.start_date.desc(), Subscription.id.desc())
    )
    return _filter_state(list(result.scalars().all()), state, as_of or today())
