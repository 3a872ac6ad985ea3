"""
Read-only access to course metadata.

Courses are maintained by the catalogue service; the booking core only needs a
snapshot of capacity and coach, and a locked read during admission.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.models.course import Course
from coursebook.models.user import User


async def get_course(db: AsyncSession, course_id: int) -> Optional[Course]:
    result = await db.execute(select(Course).where(Course.id == course_id))
    return result.scalar_one_or_none()


async def lock_course(db: AsyncSession, course_id: int) -> Optional[Course]:
    """
    Read the course row with FOR UPDATE.
    Every admission for the same course queues here, so the capacity count
    that follows is never computed from a stale view.
    """
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def lock_user(db: AsyncSession, user_id: int) -> bool:
    """
    Lock the user row so bookings by one user on different courses serialize
    on the credit check. Returns False when the row does not exist.
    """
    result = await db.execute(select(User.id).where(User.id == user_id).with_for_update())
    return result.scalar_one_or_none() is not None


async def list_coach_courses(db: AsyncSession, coach_user_id: int) -> list[Course]:
    result = await db.execute(
        select(Course)
        .where(Course.coach_user_id == coach_user_id)
        .order_by(Course.start_at.asc(), Course.id.asc())
    )
    return list(result.scalars().all())
