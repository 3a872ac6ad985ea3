"""
Pydantic schemas for course listings and coach reports.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CourseResponse(BaseModel):
    id: int
    coach_user_id: int
    name: str
    description: Optional[str] = None
    start_at: datetime
    end_at: datetime
    max_participants: int
    active_bookings: int

    @classmethod
    def from_course(cls, course, active_bookings: int) -> "CourseResponse":
        return cls(
            id=course.id,
            coach_user_id=course.coach_user_id,
            name=course.name,
            description=course.description,
            start_at=course.start_at,
            end_at=course.end_at,
            max_participants=course.max_participants,
            active_bookings=active_bookings,
        )


class CoachUsageResponse(BaseModel):
    coach_user_id: int
    month: Optional[str] = None
    course_count: int
    course_bookings: int
    participants: int
    revenue: int
    cached: bool = False
