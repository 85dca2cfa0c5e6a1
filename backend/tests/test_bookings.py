"""
Tests for duplicate-safe class booking.
"""

import asyncio
from datetime import timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import BookingNotFound, ClassNotFound, DuplicateBooking, InvalidTransition
from app.models.booking import Booking, BookingStatus
from app.services import booking_service

SUBJECT = 1


@pytest.mark.asyncio
async def test_schedule_booking(db_session, yoga_class, next_week):
    booking = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)

    assert booking.id is not None
    assert booking.status == BookingStatus.SCHEDULED.value
    assert booking.class_id == yoga_class.id


@pytest.mark.asyncio
async def test_duplicate_booking_is_rejected(db_session, yoga_class, next_week):
    await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)

    with pytest.raises(DuplicateBooking) as exc_info:
        await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)

    assert exc_info.value.error_code == "DuplicateBooking"
    bookings = await booking_service.get_subject_bookings(db_session, SUBJECT)
    assert len(bookings) == 1


@pytest.mark.asyncio
async def test_same_instant_in_other_timezone_is_duplicate(db_session, yoga_class, next_week):
    await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)

    shifted = next_week.astimezone(timezone(timedelta(hours=8)))
    with pytest.raises(DuplicateBooking):
        await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, shifted)


@pytest.mark.asyncio
async def test_different_time_books_independently(db_session, yoga_class, next_week):
    await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    later = await booking_service.schedule_booking(
        db_session, SUBJECT, yoga_class.id, next_week + timedelta(days=1)
    )
    assert later.status == BookingStatus.SCHEDULED.value
    assert len(await booking_service.get_subject_bookings(db_session, SUBJECT)) == 2


@pytest.mark.asyncio
async def test_other_subject_can_book_same_slot(db_session, yoga_class, next_week):
    await booking_service.schedule_booking(db_session, 1, yoga_class.id, next_week)
    other = await booking_service.schedule_booking(db_session, 2, yoga_class.id, next_week)
    assert other.subject_id == 2


@pytest.mark.asyncio
async def test_unknown_class(db_session, next_week):
    with pytest.raises(ClassNotFound):
        await booking_service.schedule_booking(db_session, SUBJECT, 999, next_week)


@pytest.mark.asyncio
async def test_concurrent_duplicate_requests(session_factory, yoga_class, next_week):
    """Two simultaneous identical requests: exactly one success, one DuplicateBooking."""

    async def attempt():
        async with session_factory() as db:
            try:
                await booking_service.schedule_booking(db, SUBJECT, yoga_class.id, next_week)
                return "scheduled"
            except DuplicateBooking:
                return "duplicate"

    results = await asyncio.gather(attempt(), attempt())
    assert sorted(results) == ["duplicate", "scheduled"]


@pytest.mark.asyncio
async def test_unique_index_rejects_second_active_row(db_session, yoga_class, next_week):
    db_session.add_all([
        Booking(subject_id=SUBJECT, class_id=yoga_class.id, occurrence_time=next_week),
        Booking(subject_id=SUBJECT, class_id=yoga_class.id, occurrence_time=next_week),
    ])
    with pytest.raises(IntegrityError):
        await db_session.flush()


@pytest.mark.asyncio
async def test_archived_booking_does_not_block(db_session, yoga_class, next_week):
    booking = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    archived = await booking_service.archive_booking(db_session, booking.id)
    await db_session.commit()
    assert archived.status == BookingStatus.ARCHIVED.value

    again = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    assert again.id != booking.id

    other_time = await booking_service.schedule_booking(
        db_session, SUBJECT, yoga_class.id, next_week + timedelta(hours=2)
    )
    assert other_time.status == BookingStatus.SCHEDULED.value


@pytest.mark.asyncio
async def test_archive_is_terminal(db_session, yoga_class, next_week):
    booking = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    await booking_service.archive_booking(db_session, booking.id)

    with pytest.raises(InvalidTransition):
        await booking_service.archive_booking(db_session, booking.id)


@pytest.mark.asyncio
async def test_archive_missing_booking(db_session):
    with pytest.raises(BookingNotFound):
        await booking_service.archive_booking(db_session, 404)


@pytest.mark.asyncio
async def test_is_booked_projection(db_session, yoga_class, next_week):
    assert not await booking_service.is_booked(db_session, SUBJECT, yoga_class.id)

    booking = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    assert await booking_service.is_booked(db_session, SUBJECT, yoga_class.id)
    assert not await booking_service.is_booked(db_session, 2, yoga_class.id)

    await booking_service.archive_booking(db_session, booking.id)
    await db_session.commit()
    assert not await booking_service.is_booked(db_session, SUBJECT, yoga_class.id)


@pytest.mark.asyncio
async def test_list_bookings_by_status(db_session, yoga_class, next_week):
    first = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)
    await booking_service.schedule_booking(
        db_session, SUBJECT, yoga_class.id, next_week + timedelta(days=7)
    )
    await booking_service.archive_booking(db_session, first.id)
    await db_session.commit()

    scheduled = await booking_service.get_subject_bookings(
        db_session, SUBJECT, BookingStatus.SCHEDULED
    )
    archived = await booking_service.get_subject_bookings(db_session, SUBJECT, BookingStatus.ARCHIVED)
    assert len(scheduled) == 1
    assert [b.id for b in archived] == [first.id]


@pytest.mark.asyncio
async def test_archive_scoped_to_owner(db_session, yoga_class, next_week):
    booking = await booking_service.schedule_booking(db_session, SUBJECT, yoga_class.id, next_week)

    with pytest.raises(BookingNotFound):
        await booking_service.archive_booking(db_session, booking.id, subject_id=2)

    archived = await booking_service.archive_booking(db_session, booking.id, subject_id=SUBJECT)
    assert archived.status == BookingStatus.ARCHIVED.value
