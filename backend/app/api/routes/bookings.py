"""
Class booking endpoints with duplicate-safe registration.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_subject_id
from app.db.session import get_db
from app.models.booking import BookingStatus
from app.schemas.booking import BookingCreate, BookingResponse, BookingStatusResponse
from app.services.booking_service import (
    archive_booking,
    get_subject_bookings,
    is_booked,
    schedule_booking,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Register for a class occurrence.

    A second registration for the same class and occurrence time returns 409
    with error_code DuplicateBooking.
    """
    return await schedule_booking(
        db, subject_id, booking_data.class_id, booking_data.occurrence_time
    )


@router.get("/", response_model=list[BookingResponse])
async def list_subject_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_subject_bookings(db, subject_id, booking_status)


@router.get("/status/{class_id}", response_model=BookingStatusResponse)
async def booking_status_endpoint(
    class_id: int,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    return BookingStatusResponse(
        class_id=class_id,
        registered=await is_booked(db, subject_id, class_id),
    )


@router.post("/{booking_id}/archive", response_model=BookingResponse)
async def archive_booking_endpoint(
    booking_id: int,
    subject_id: int = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """Archive one of the caller's bookings; archived bookings no longer hold their slot."""
    return await archive_booking(db, booking_id, subject_id)
