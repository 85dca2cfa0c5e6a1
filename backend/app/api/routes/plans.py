"""
Plan catalog endpoints. Visible-plan listings are cached in Redis.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.schemas.plan import (
    ExpiryPreviewRequest,
    ExpiryPreviewResponse,
    PlanCreate,
    PlanResponse,
    PlanVisibilityUpdate,
)
from app.services.cache_service import get_cached_catalog, invalidate_catalog, set_cached_catalog
from app.services.plan_service import create_plan, get_plan, list_plans, set_plan_visibility
from app.services.subscription_service import today
from app.services.term_calculator import compute_expiry, is_unbounded

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("/", response_model=list[PlanResponse])
async def list_plans_endpoint(
    include_hidden: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    variant = "all" if include_hidden else "visible"
    cached = await get_cached_catalog("plans", variant)
    if cached is not None:
        return [PlanResponse.model_validate(p) for p in cached]

    plans = [PlanResponse.model_validate(p) for p in await list_plans(db, include_hidden)]
    await set_cached_catalog("plans", variant, [p.model_dump(mode="json") for p in plans])
    return plans


@router.post(
    "/",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_subject_id)],
)
async def create_plan_endpoint(
    plan_data: PlanCreate,
    db: AsyncSession = Depends(get_db),
):
    plan = await create_plan(db, plan_data)
    await invalidate_catalog("plans")
    return PlanResponse.model_validate(plan)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan_endpoint(plan_id: int, db: AsyncSession = Depends(get_db)):
    return PlanResponse.model_validate(await get_plan(db, plan_id))


@router.patch(
    "/{plan_id}/visibility",
    response_model=PlanResponse,
    dependencies=[Depends(get_current_subject_id)],
)
async def set_visibility_endpoint(
    plan_id: int,
    body: PlanVisibilityUpdate,
    db: AsyncSession = Depends(get_db),
):
    plan = await set_plan_visibility(db, plan_id, body.is_visible)
    await invalidate_catalog("plans")
    return PlanResponse.model_validate(plan)


@router.post("/{plan_id}/expiry", response_model=ExpiryPreviewResponse)
async def preview_expiry(
    plan_id: int,
    body: ExpiryPreviewRequest,
    db: AsyncSession = Depends(get_db),
):
    """Expiry a subscription to this plan would get if it started on `start_date`."""
    plan = await get_plan(db, plan_id)
    expiry = compute_expiry(body.start_date, plan.cadence, as_of=today(), backdated=body.backdated)
    lifetime = is_unbounded(expiry)
    return ExpiryPreviewResponse(
        plan_id=plan.id,
        cadence=plan.cadence,
        start_date=body.start_date,
        expires_on=None if lifetime else expiry,
        is_lifetime=lifetime,
    )
