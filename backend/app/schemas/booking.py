"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from pydantic import BaseModel


class BookingCreate(BaseModel):
    class_id: int
    occurrence_time: datetime


class BookingResponse(BaseModel):
    id: int
    subject_id: int
    class_id: int
    occurrence_time: datetime
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingStatusResponse(BaseModel):
    class_id: int
    registered: bool
