"""
Class catalog endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.schemas.gym_class import GymClassCreate, GymClassResponse
from app.services.class_service import create_class, get_class, list_classes

router = APIRouter(prefix="/classes", tags=["Classes"])


@router.post(
    "/",
    response_model=GymClassResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_subject_id)],
)
async def create_class_endpoint(
    class_data: GymClassCreate,
    db: AsyncSession = Depends(get_db),
):
    return await create_class(db, class_data)


@router.get("/", response_model=list[GymClassResponse])
async def list_classes_endpoint(db: AsyncSession = Depends(get_db)):
    return await list_classes(db)


@router.get("/{class_id}", response_model=GymClassResponse)
async def get_class_endpoint(class_id: int, db: AsyncSession = Depends(get_db)):
    return await get_class(db, class_id)
