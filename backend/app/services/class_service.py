"""
Class catalog service handling CRUD operations.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ClassNotFound
from app.core.logging import get_logger
from app.models.gym_class import GymClass
from app.schemas.gym_class import GymClassCreate

logger = get_logger(__name__)


async def create_class(db: AsyncSession, class_data: GymClassCreate) -> GymClass:
    gym_class = GymClass(
        name=class_data.name,
        description=class_data.description,
        duration_minutes=class_data.duration_minutes,
        difficulty=class_data.difficulty,
    )
    db.add(gym_class)
    await db.flush()
    await db.refresh(gym_class)

    logger.info("class_created", class_id=gym_class.id, name=gym_class.name)
    return gym_class


async def get_class(db: AsyncSession, class_id: int) -> GymClass:
    """Get a single class by ID."""
    result = await db.execute(select(GymClass).where(GymClass.id == class_id))
    gym_class = result.scalar_one_or_none()

    if not gym_class:
        raise ClassNotFound(class_id)
    return gym_class


async def list_classes(db: AsyncSession) -> List[GymClass]:
    result = await db.execute(select(GymClass).order_by(GymClass.name.asc()))
    return list(result.scalars().all())
