from coursebook.schemas.booking import (
    BookingResponse,
    BookingCancelResponse,
    UserBookingItem,
    UserBookingOverview,
)
from coursebook.schemas.credit import (
    CreditPackageCreate,
    CreditPackageResponse,
    CreditGrantCreate,
    CreditGrantResponse,
    CreditPurchaseItem,
    CreditSummary,
)
from coursebook.schemas.course import CourseResponse, CoachUsageResponse

__all__ = [
    "BookingResponse", "BookingCancelResponse", "UserBookingItem", "UserBookingOverview",
    "CreditPackageCreate", "CreditPackageResponse", "CreditGrantCreate", "CreditGrantResponse",
    "CreditPurchaseItem", "CreditSummary",
    "CourseResponse", "CoachUsageResponse",
]
