"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import plans, subscriptions, rewards, points, classes, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(plans.router)
api_router.include_router(subscriptions.router)
api_router.include_router(rewards.router)
api_router.include_router(points.router)
api_router.include_router(classes.router)
api_router.include_router(bookings.router)
