"""
User model. Accounts are provisioned by the auth service; this core only reads
and locks the row when admitting a booking.
"""

from sqlalchemy import Column, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship

from coursebook.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="USER")  # USER, COACH, ADMIN

    # Relationships
    credit_purchases = relationship("CreditPurchase", back_populates="user", lazy="raise")
    bookings = relationship("CourseBooking", back_populates="user", lazy="raise")

    __table_args__ = (
        CheckConstraint("role IN ('USER', 'COACH', 'ADMIN')", name="check_user_role"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
