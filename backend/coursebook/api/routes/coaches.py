"""
Coach-facing endpoints: the coach's own courses and their usage report.
Both require a token issued with role=COACH.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.db.session import get_db, store_errors
from coursebook.schemas.course import CoachUsageResponse, CourseResponse
from coursebook.services.course_service import list_coach_courses
from coursebook.services.usage_service import coach_usage, course_active_count
from coursebook.core.security import require_coach

router = APIRouter(prefix="/coaches", tags=["Coaches"])


@router.get("/me/courses", response_model=list[CourseResponse])
async def get_my_courses(
    coach_id: int = Depends(require_coach),
    db: AsyncSession = Depends(get_db),
):
    """Courses taught by the caller, earliest first, with active booking counts."""
    async with store_errors():
        courses = await list_coach_courses(db, coach_id)
    return [
        CourseResponse.from_course(course, await course_active_count(db, course.id))
        for course in courses
    ]


@router.get("/me/usage", response_model=CoachUsageResponse)
async def get_my_usage(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    coach_id: int = Depends(require_coach),
    db: AsyncSession = Depends(get_db),
):
    """
    Bookings on the caller's courses, optionally limited to one month (YYYY-MM).
    Served from Redis when cached; invalidated on every booking change.
    """
    return await coach_usage(db, coach_id, month)
