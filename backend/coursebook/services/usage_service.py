"""
Read-side aggregates over the ledger and the booking store.

Nothing here writes or enforces an invariant. Coach reports may come from the
Redis cache; anything used for admission is computed in admission_service.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.models.booking import CourseBooking
from coursebook.models.course import Course
from coursebook.models.credit import CreditPurchase
from coursebook.db.session import store_errors
from coursebook.services import booking_store
from coursebook.services.cache_service import get_cached_usage, set_cached_usage
from coursebook.services.ledger_service import total_granted
from coursebook.core.logging import get_logger

logger = get_logger(__name__)


def month_window(month: str) -> tuple[datetime, datetime]:
    """'2026-03' -> [2026-03-01, 2026-04-01) in UTC. Raises ValueError on bad input."""
    start = datetime.strptime(month, "%Y-%m").replace(tzinfo=timezone.utc)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


async def course_active_count(db: AsyncSession, course_id: int) -> int:
    async with store_errors():
        return await booking_store.count_active(db, course_id)


async def user_credit_summary(db: AsyncSession, user_id: int) -> dict:
    """{granted, used, remaining} for one user, derived from the rows."""
    async with store_errors():
        granted = await total_granted(db, user_id)
        used = await booking_store.count_active_for_user(db, user_id)
    return {"granted": granted, "used": used, "remaining": granted - used}


async def list_courses_with_counts(db: AsyncSession) -> list[tuple[Course, int]]:
    """Every course with its number of active bookings, earliest first."""
    active_count = func.count(CourseBooking.id)
    query = (
        select(Course, active_count)
        .outerjoin(
            CourseBooking,
            and_(
                CourseBooking.course_id == Course.id,
                CourseBooking.cancelled_at.is_(None),
            ),
        )
        .group_by(Course.id)
        .order_by(Course.start_at.asc(), Course.id.asc())
    )
    async with store_errors():
        result = await db.execute(query)
    return [(course, int(count)) for course, count in result.all()]


async def _price_per_credit(db: AsyncSession) -> float:
    result = await db.execute(
        select(
            func.coalesce(func.sum(CreditPurchase.price_paid), 0),
            func.coalesce(func.sum(CreditPurchase.credits), 0),
        )
    )
    paid, credits = result.one()
    if not credits:
        return 0.0
    return int(paid) / int(credits)


async def coach_usage(db: AsyncSession, coach_user_id: int, month: Optional[str] = None) -> dict:
    """
    Booking totals for a coach's courses.

    With `month` (YYYY-MM) only bookings made in that month count. Revenue is
    the number of active bookings valued at the average price paid per credit
    across all purchases, rounded to the minor currency unit.
    """
    cached = await get_cached_usage(coach_user_id, month)
    if cached is not None:
        return {**cached, "cached": True}

    booking_filter = [
        Course.coach_user_id == coach_user_id,
        CourseBooking.cancelled_at.is_(None),
    ]
    if month:
        start, end = month_window(month)
        booking_filter += [CourseBooking.booked_at >= start, CourseBooking.booked_at < end]

    async with store_errors():
        course_count = (
            await db.execute(
                select(func.count(Course.id)).where(Course.coach_user_id == coach_user_id)
            )
        ).scalar() or 0

        row = (
            await db.execute(
                select(
                    func.count(CourseBooking.id),
                    func.count(func.distinct(CourseBooking.user_id)),
                )
                .select_from(CourseBooking)
                .join(Course, Course.id == CourseBooking.course_id)
                .where(*booking_filter)
            )
        ).one()
        price_per_credit = await _price_per_credit(db)

    course_bookings, participants = int(row[0]), int(row[1])
    report = {
        "coach_user_id": coach_user_id,
        "month": month,
        "course_count": int(course_count),
        "course_bookings": course_bookings,
        "participants": participants,
        "revenue": round(course_bookings * price_per_credit),
    }

    await set_cached_usage(coach_user_id, month, report)
    logger.debug("coach_usage_computed", coach_user_id=coach_user_id, month=month)
    return {**report, "cached": False}
