"""
Admission control for course bookings.

CONCURRENCY STRATEGY: Locked check-and-commit
=============================================

Problem:
  Two users try to take the last seat of a course at the same time.
  Both count active bookings = max - 1, both insert, course is overbooked.
  The same happens to a user's credit when they book two courses at once.

Solution:
  The whole admission runs in one transaction that takes its locks in a
  fixed order:

  1. SELECT the course row FOR UPDATE      -> serializes bookings per course
  2. SELECT the user row FOR UPDATE        -> serializes bookings per user
  3. duplicate / credit / capacity checks  -> read after both locks
  4. INSERT the booking                    -> partial unique index backs (3)
  5. COMMIT                                -> releases the locks

  Every transaction acquires course before user, so two admissions can never
  wait on each other in a cycle. On PostgreSQL the transaction runs at
  READ COMMITTED: each statement after the lock sees the bookings committed
  by whoever held the lock before us. SQLite takes its database-wide write
  lock at BEGIN (see db.session), which gives the same serialization.

  Nothing is retried here. A timeout or lost connection rolls back and
  surfaces as StoreUnavailable; the caller decides whether to retry after
  re-checking for an active booking.

Cancellation is a compare-and-set UPDATE on cancelled_at IS NULL, so two
racing cancels cannot both succeed. The freed credit and seat are implicit:
balances and seat counts are always derived from the booking rows.
"""

import time

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.models.booking import CourseBooking
from coursebook.core.exceptions import (
    BookingDomainError,
    BookingNotFound,
    CourseFull,
    CourseNotFound,
    DuplicateBooking,
    InsufficientCredit,
)
from coursebook.core.logging import get_logger
from coursebook.core.metrics import admission_latency, record_booking_attempt, record_cancellation
from coursebook.db.session import atomic
from coursebook.services import booking_store
from coursebook.services.course_service import lock_course, lock_user
from coursebook.services.ledger_service import total_granted

logger = get_logger(__name__)

ACTIVE_BOOKING_INDEX = "uq_course_bookings_active_user_course"


def _is_active_duplicate(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # PostgreSQL names the index; SQLite names the columns
    return ACTIVE_BOOKING_INDEX in message or (
        "UNIQUE constraint failed" in message and "course_bookings" in message
    )


async def book_course(db: AsyncSession, user_id: int, course_id: int) -> CourseBooking:
    """
    Admit and commit a booking, or raise the reason it was refused.

    Checks run in this order: course exists, no active duplicate, remaining
    credit > 0, course not full.
    """
    started = time.perf_counter()
    try:
        async with atomic(db):
            course = await lock_course(db, course_id)
            if course is None:
                raise CourseNotFound(course_id=course_id)

            # A user without a row has no grants either; the credit check rejects it.
            await lock_user(db, user_id)

            if await booking_store.find_active_booking(db, user_id, course_id) is not None:
                raise DuplicateBooking(course_id=course_id)

            granted = await total_granted(db, user_id)
            used = await booking_store.count_active_for_user(db, user_id)
            if granted - used <= 0:
                raise InsufficientCredit(granted=granted, used=used)

            active = await booking_store.count_active(db, course_id)
            if active >= course.max_participants:
                raise CourseFull(course_id=course_id, max_participants=course.max_participants)

            try:
                booking = await booking_store.create_booking(db, user_id, course_id)
            except IntegrityError as exc:
                if _is_active_duplicate(exc):
                    raise DuplicateBooking(course_id=course_id) from exc
                raise

    except BookingDomainError as exc:
        record_booking_attempt(exc.code)
        logger.info(
            "booking_rejected",
            user_id=user_id,
            course_id=course_id,
            reason=exc.code,
            details=exc.details,
        )
        raise
    finally:
        admission_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        course_id=course_id,
        seats_taken=active + 1,
        credits_remaining=granted - used - 1,
    )
    return booking


async def cancel_course_booking(db: AsyncSession, user_id: int, course_id: int) -> CourseBooking:
    """
    Cancel the user's active booking for a course.

    Raises BookingNotFound when there is no active booking and
    AlreadyCancelled when a concurrent cancel won the compare-and-set.
    Callers should treat either as "nothing left to cancel", not retry.
    """
    try:
        async with atomic(db):
            booking = await booking_store.find_active_booking(db, user_id, course_id)
            if booking is None:
                raise BookingNotFound(course_id=course_id)
            cancelled = await booking_store.cancel_booking(db, booking.id)

    except BookingDomainError as exc:
        record_cancellation(exc.code)
        logger.info("booking_cancel_rejected", user_id=user_id, course_id=course_id, reason=exc.code)
        raise

    record_cancellation("success")
    logger.info(
        "booking_cancelled",
        booking_id=cancelled.id,
        user_id=user_id,
        course_id=course_id,
    )
    return cancelled
