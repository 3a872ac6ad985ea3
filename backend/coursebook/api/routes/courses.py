"""
Course listing and booking endpoints.

Booking and cancelling run through the admission controller; errors are
BookingDomainError subclasses rendered by the handler registered in main.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.core.exceptions import CourseNotFound
from coursebook.db.session import get_db, store_errors
from coursebook.schemas.booking import BookingResponse, BookingCancelResponse
from coursebook.schemas.course import CourseResponse
from coursebook.services.admission_service import book_course, cancel_course_booking
from coursebook.services.cache_service import invalidate_usage_cache
from coursebook.services.course_service import get_course
from coursebook.services.usage_service import course_active_count, list_courses_with_counts
from coursebook.core.security import get_current_user_id

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("/", response_model=list[CourseResponse])
async def list_courses_endpoint(db: AsyncSession = Depends(get_db)):
    """All courses with their current number of active bookings."""
    rows = await list_courses_with_counts(db)
    return [CourseResponse.from_course(course, active) for course, active in rows]


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course_endpoint(course_id: int, db: AsyncSession = Depends(get_db)):
    """One course with its current number of active bookings; 404 when unknown."""
    async with store_errors():
        course = await get_course(db, course_id)
    if course is None:
        raise CourseNotFound(course_id=course_id)
    return CourseResponse.from_course(course, await course_active_count(db, course_id))


@router.post(
    "/{course_id}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_course_booking(
    course_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Spend one credit to take a seat in the course.

    400 when the user already holds a seat, has no credit left, or the course
    is full; 404 for an unknown course; 503 when the store timed out.
    """
    booking = await book_course(db, user_id, course_id)
    await invalidate_usage_cache()
    return booking


@router.delete("/{course_id}/bookings", response_model=BookingCancelResponse)
async def cancel_course_booking_endpoint(
    course_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel the active booking; the credit becomes usable again."""
    booking = await cancel_course_booking(db, user_id, course_id)
    await invalidate_usage_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        course_id=booking.course_id,
        cancelled_at=booking.cancelled_at,
    )
