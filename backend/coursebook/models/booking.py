"""
CourseBooking model: a user's seat in a course.

Key design decisions:
- `cancelled_at IS NULL` means active; cancelling stamps the time once and the
  row is kept for the audit trail
- A partial unique index allows at most one active booking per (user, course)
  while leaving any number of cancelled rows for the same pair
- The (course_id, cancelled_at) index serves the capacity count at admission
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from coursebook.db.base import Base

ACTIVE_BOOKING_PREDICATE = text("cancelled_at IS NULL")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CourseBooking(Base):
    __tablename__ = "course_bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    booked_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings")
    course = relationship("Course", back_populates="bookings", lazy="selectin")

    __table_args__ = (
        Index(
            "uq_course_bookings_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=ACTIVE_BOOKING_PREDICATE,
            sqlite_where=ACTIVE_BOOKING_PREDICATE,
        ),
        Index("ix_course_bookings_course_cancelled", "course_id", "cancelled_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.cancelled_at is None

    def __repr__(self) -> str:
        state = "active" if self.is_active else "cancelled"
        return f"<CourseBooking(id={self.id}, user={self.user_id}, course={self.course_id}, {state})>"
