"""
Booking store: reads and writes of course_bookings rows.

Functions here do not commit. They run inside the caller's transaction so the
admission controller can compose them into one atomic unit.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.models.booking import CourseBooking
from coursebook.core.exceptions import AlreadyCancelled, BookingNotFound


async def find_active_booking(db: AsyncSession, user_id: int, course_id: int) -> Optional[CourseBooking]:
    result = await db.execute(
        select(CourseBooking).where(
            CourseBooking.user_id == user_id,
            CourseBooking.course_id == course_id,
            CourseBooking.cancelled_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def count_active(db: AsyncSession, course_id: int) -> int:
    """Active bookings holding a seat in the course."""
    result = await db.execute(
        select(func.count(CourseBooking.id)).where(
            CourseBooking.course_id == course_id,
            CourseBooking.cancelled_at.is_(None),
        )
    )
    return int(result.scalar() or 0)


async def count_active_for_user(db: AsyncSession, user_id: int) -> int:
    """Active bookings of the user, i.e. credits currently in use."""
    result = await db.execute(
        select(func.count(CourseBooking.id)).where(
            CourseBooking.user_id == user_id,
            CourseBooking.cancelled_at.is_(None),
        )
    )
    return int(result.scalar() or 0)


async def create_booking(db: AsyncSession, user_id: int, course_id: int) -> CourseBooking:
    """
    Insert an active booking and flush it.
    A concurrent active duplicate surfaces as IntegrityError from the
    partial unique index.
    """
    booking = CourseBooking(
        user_id=user_id,
        course_id=course_id,
        booked_at=datetime.now(timezone.utc),
        cancelled_at=None,
    )
    db.add(booking)
    await db.flush()
    return booking


async def cancel_booking(db: AsyncSession, booking_id: int) -> CourseBooking:
    """
    Stamp cancelled_at on an active booking.

    Compare-and-set: the UPDATE only matches while cancelled_at is still NULL,
    so of two racing cancels exactly one affects a row. The loser gets
    AlreadyCancelled; an unknown id gets BookingNotFound.
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(CourseBooking)
        .where(
            CourseBooking.id == booking_id,
            CourseBooking.cancelled_at.is_(None),
        )
        .values(cancelled_at=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        exists = await db.execute(select(CourseBooking.id).where(CourseBooking.id == booking_id))
        if exists.scalar_one_or_none() is None:
            raise BookingNotFound(booking_id=booking_id)
        raise AlreadyCancelled(booking_id=booking_id)

    refreshed = await db.execute(
        select(CourseBooking)
        .where(CourseBooking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return refreshed.scalar_one()


async def list_user_bookings(db: AsyncSession, user_id: int) -> list[CourseBooking]:
    """All bookings of a user, active and cancelled, newest first."""
    result = await db.execute(
        select(CourseBooking)
        .where(CourseBooking.user_id == user_id)
        .order_by(CourseBooking.booked_at.desc(), CourseBooking.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
