"""
Endpoints describing the authenticated user's credits and bookings.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from coursebook.db.session import get_db, store_errors
from coursebook.schemas.booking import UserBookingItem, UserBookingOverview
from coursebook.schemas.credit import CreditPurchaseItem, CreditSummary
from coursebook.services.booking_store import list_user_bookings
from coursebook.services.ledger_service import list_grants
from coursebook.services.usage_service import user_credit_summary
from coursebook.core.security import get_current_user_id

router = APIRouter(prefix="/users/me", tags=["Users"])


@router.get("/credits", response_model=CreditSummary)
async def get_my_credits(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_credit_summary(db, user_id)


@router.get("/credit-purchases", response_model=list[CreditPurchaseItem])
async def get_my_credit_purchases(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Purchase history, newest first."""
    async with store_errors():
        grants = await list_grants(db, user_id)
    return [
        CreditPurchaseItem(
            name=grant.credit_package.name if grant.credit_package else None,
            purchased_credits=grant.credits,
            price_paid=grant.price_paid,
            purchase_at=grant.granted_at,
        )
        for grant in grants
    ]


@router.get("/bookings", response_model=UserBookingOverview)
async def get_my_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Remaining and used credits plus every booking, cancelled ones included."""
    summary = await user_credit_summary(db, user_id)
    async with store_errors():
        bookings = await list_user_bookings(db, user_id)
    return UserBookingOverview(
        credit_remain=summary["remaining"],
        credit_usage=summary["used"],
        course_booking=[
            UserBookingItem(
                booking_id=booking.id,
                course_id=booking.course_id,
                name=booking.course.name,
                start_at=booking.course.start_at,
                end_at=booking.course.end_at,
                coach_user_id=booking.course.coach_user_id,
                booked_at=booking.booked_at,
                cancelled_at=booking.cancelled_at,
            )
            for booking in bookings
        ],
    )
