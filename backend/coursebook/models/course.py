"""
Course model, owned by the course metadata service.

Key design decisions:
- `max_participants` is the capacity ceiling checked at admission time
- The active booking count is never stored here; it is counted from
  course_bookings so it cannot drift from the facts
- Admission locks this row (SELECT ... FOR UPDATE) to serialize bookings
  competing for the same seats
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from coursebook.db.base import Base, TimestampMixin


class Course(Base, TimestampMixin):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    coach_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(2000), nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    max_participants = Column(Integer, nullable=False)

    # Relationships
    coach = relationship("User", lazy="raise")
    bookings = relationship("CourseBooking", back_populates="course", lazy="raise")

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="check_course_max_participants_positive"),
        CheckConstraint("end_at > start_at", name="check_course_time_range"),
        Index("ix_courses_start_at", "start_at"),
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, name={self.name}, capacity={self.max_participants})>"
