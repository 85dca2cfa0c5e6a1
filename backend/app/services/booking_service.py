"""
Class booking service with duplicate-safe scheduling.

CONCURRENCY STRATEGY: Keyed critical section + Partial Unique Index
===================================================================

Problem:
  A member double-taps "join". Two requests for the same class occurrence
  both see no booking and both insert. Result: two active registrations.

Solution:
  1. Requests for one (subject, class, occurrence_time) key are serialised
     in-process by a KeyedLock. Different keys never wait on each other.
  2. Inside the lock the write path re-checks for an active booking itself;
     it never trusts an earlier is_booked() read by the caller.
  3. The bookings table has a unique index on
     (subject_id, class_id, occurrence_time) WHERE status = 'scheduled'.
     A concurrent insert from another process fails with IntegrityError,
     which is reported as DuplicateBooking, never as a generic error.

State per key: unbooked -> scheduled -> archived. Archived rows fall outside
the partial index, so they never block a new booking.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BookingNotFound, DuplicateBooking, InvalidTransition, Unavailable
from app.core.locks import KeyedLock
from app.core.logging import get_logger
from app.core.metrics import record_booking_attempt
from app.models.booking import Booking, BookingStatus
from app.services.class_service import get_class

logger = get_logger(__name__)

_slot_locks = KeyedLock()


def _normalise(occurrence_time: datetime) -> datetime:
    """Store every occurrence as UTC so equal instants always share one key."""
    if occurrence_time.tzinfo is None:
        return occurrence_time.replace(tzinfo=timezone.utc)
    return occurrence_time.astimezone(timezone.utc)


async def _active_booking_exists(
    db: AsyncSession, subject_id: int, class_id: int, occurrence_time: datetime
) -> bool:
    return bool(
        await db.scalar(
            select(
                exists().where(
                    Booking.subject_id == subject_id,
                    Booking.class_id == class_id,
                    Booking.occurrence_time == occurrence_time,
                    Booking.status == BookingStatus.SCHEDULED.value,
                )
            )
        )
    )


async def schedule_booking(
    db: AsyncSession,
    subject_id: int,
    class_id: int,
    occurrence_time: datetime,
) -> Booking:
    """
    Register the subject for one class occurrence.
    Raises DuplicateBooking if an active booking already holds the slot.
    """
    occurrence_time = _normalise(occurrence_time)
    key = ("booking", subject_id, class_id, occurrence_time)

    async with _slot_locks.hold(key):
        try:
            await get_class(db, class_id)

            if await _active_booking_exists(db, subject_id, class_id, occurrence_time):
                record_booking_attempt("conflict")
                logger.warning(
                    "booking_conflict",
                    subject_id=subject_id,
                    class_id=class_id,
                    occurrence_time=occurrence_time.isoformat(),
                    detected_by="precheck",
                )
                await db.rollback()
                raise DuplicateBooking(subject_id, class_id, occurrence_time)

            booking = Booking(
                subject_id=subject_id,
                class_id=class_id,
                occurrence_time=occurrence_time,
                status=BookingStatus.SCHEDULED.value,
            )
            db.add(booking)
            try:
                await db.flush()
            except IntegrityError:
                await db.rollback()
                record_booking_attempt("conflict")
                logger.warning(
                    "booking_conflict",
                    subject_id=subject_id,
                    class_id=class_id,
                    occurrence_time=occurrence_time.isoformat(),
                    detected_by="unique_index",
                )
                raise DuplicateBooking(subject_id, class_id, occurrence_time)

            await db.commit()
        except OperationalError as e:
            await db.rollback()
            record_booking_attempt("error")
            logger.error("booking_store_unavailable", subject_id=subject_id, error=str(e))
            raise Unavailable() from e

    record_booking_attempt("success")
    logger.info(
        "booking_scheduled",
        booking_id=booking.id,
        subject_id=subject_id,
        class_id=class_id,
        occurrence_time=occurrence_time.isoformat(),
    )
    return booking


async def is_booked(db: AsyncSession, subject_id: int, class_id: int) -> bool:
    """Read-only projection for the "join" / "already registered" affordance."""
    return bool(
        await db.scalar(
            select(
                exists().where(
                    Booking.subject_id == subject_id,
                    Booking.class_id == class_id,
                    Booking.status == BookingStatus.SCHEDULED.value,
                )
            )
        )
    )


async def archive_booking(
    db: AsyncSession, booking_id: int, subject_id: Optional[int] = None
) -> Booking:
    """
    Transition scheduled -> archived. When `subject_id` is given, another
    subject's booking is reported as not found.
    """
    query = select(Booking).where(Booking.id == booking_id)
    if subject_id is not None:
        query = query.where(Booking.subject_id == subject_id)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()

    if not booking:
        raise BookingNotFound(booking_id)

    if booking.status == BookingStatus.ARCHIVED.value:
        raise InvalidTransition(booking_id, booking.status, BookingStatus.ARCHIVED.value)

    booking.status = BookingStatus.ARCHIVED.value
    await db.flush()
    await db.refresh(booking)

    logger.info(
        "booking_archived",
        booking_id=booking.id,
        subject_id=booking.subject_id,
        class_id=booking.class_id,
    )
    return booking


async def get_subject_bookings(
    db: AsyncSession, subject_id: int, status: Optional[BookingStatus] = None
) -> List[Booking]:
    """All bookings for a subject, soonest occurrence first."""
    query = select(Booking).where(Booking.subject_id == subject_id)
    if status is not None:
        query = query.where(Booking.status == status.value)
    result = await db.execute(query.order_by(Booking.occurrence_time.asc(), Booking.id.asc()))
    return list(result.scalars().all())
