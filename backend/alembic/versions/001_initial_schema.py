"""Initial schema: users, courses, credit ledger, course bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'USER'")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('USER', 'COACH', 'ADMIN')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("coach_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("max_participants > 0", name="check_course_max_participants_positive"),
        sa.CheckConstraint("end_at > start_at", name="check_course_time_range"),
    )
    op.create_index("ix_courses_id", "courses", ["id"])
    op.create_index("ix_courses_coach_user_id", "courses", ["coach_user_id"])
    op.create_index("ix_courses_start_at", "courses", ["start_at"])

    op.create_table(
        "credit_packages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("credit_amount", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("credit_amount > 0", name="check_package_credit_amount_positive"),
        sa.CheckConstraint("price >= 0", name="check_package_price_non_negative"),
    )
    op.create_index("ix_credit_packages_id", "credit_packages", ["id"])

    # The ledger: append-only, no updated_at column on purpose.
    op.create_table(
        "credit_purchases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("credit_package_id", sa.Integer(), sa.ForeignKey("credit_packages.id"), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("price_paid", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("credits > 0", name="check_grant_credits_positive"),
        sa.CheckConstraint("price_paid >= 0", name="check_grant_price_non_negative"),
    )
    op.create_index("ix_credit_purchases_id", "credit_purchases", ["id"])
    op.create_index("ix_credit_purchases_user_id", "credit_purchases", ["user_id"])
    op.create_index("ix_credit_purchases_user_granted", "credit_purchases", ["user_id", "granted_at"])

    op.create_table(
        "course_bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_course_bookings_id", "course_bookings", ["id"])
    op.create_index("ix_course_bookings_user_id", "course_bookings", ["user_id"])
    op.create_index("ix_course_bookings_course_id", "course_bookings", ["course_id"])
    # ONE ACTIVE BOOKING PER (user, course): partial unique index.
    # Cancelled rows are kept forever, so a plain UNIQUE(user_id, course_id)
    # would forbid re-booking after a cancellation.
    op.create_index(
        "uq_course_bookings_active_user_course",
        "course_bookings",
        ["user_id", "course_id"],
        unique=True,
        postgresql_where=sa.text("cancelled_at IS NULL"),
        sqlite_where=sa.text("cancelled_at IS NULL"),
    )
    # Capacity count at admission: WHERE course_id = ? AND cancelled_at IS NULL
    op.create_index(
        "ix_course_bookings_course_cancelled",
        "course_bookings",
        ["course_id", "cancelled_at"],
    )


def downgrade() -> None:
    op.drop_table("course_bookings")
    op.drop_table("credit_purchases")
    op.drop_table("credit_packages")
    op.drop_table("courses")
    op.drop_table("users")
