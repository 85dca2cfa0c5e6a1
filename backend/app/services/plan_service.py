"""
Plan catalog service. Plans are reference data: looked up, listed, created
by admins and toggled between shown and hidden.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PlanNotFound
from app.core.logging import get_logger
from app.models.plan import Plan
from app.schemas.plan import PlanCreate

logger = get_logger(__name__)


async def create_plan(db: AsyncSession, plan_data: PlanCreate) -> Plan:
    plan = Plan(
        name=plan_data.name,
        price=plan_data.price,
        cadence=plan_data.cadence.value,
        features=", ".join(plan_data.features),
        is_visible=plan_data.is_visible,
    )
    db.add(plan)
    await db.flush()
    await db.refresh(plan)

    logger.info("plan_created", plan_id=plan.id, name=plan.name, cadence=plan.cadence)
    return plan


async def get_plan(db: AsyncSession, plan_id: int) -> Plan:
    result = await db.execute(select(Plan).where(Plan.id == plan_id))
    plan = result.scalar_one_or_none()
    if not plan:
        raise PlanNotFound(plan_id)
    return plan


async def list_plans(db: AsyncSession, include_hidden: bool = False) -> List[Plan]:
    query = select(Plan)
    if not include_hidden:
        query = query.where(Plan.is_visible.is_(True))
    result = await db.execute(query.order_by(Plan.price.asc(), Plan.id.asc()))
    return list(result.scalars().all())


async def set_plan_visibility(db: AsyncSession, plan_id: int, visible: bool) -> Plan:
    plan = await get_plan(db, plan_id)
    plan.is_visible = visible
    await db.flush()
    await db.refresh(plan)

    logger.info("plan_visibility_changed", plan_id=plan.id, visible=visible)
    return plan
