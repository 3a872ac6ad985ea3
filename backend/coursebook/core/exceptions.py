"""
Domain errors for the credit ledger and booking admission core.

Every failure carries a stable `code` so the HTTP layer can render it without
string matching. Only StoreUnavailable is retryable; the rest are business
rule violations and are terminal for the request.
"""

from typing import Any, Dict, Optional

from fastapi import status


class BookingDomainError(Exception):
    """Base class for all admission and ledger failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "status": "failed",
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class InvalidAmount(BookingDomainError):
    default_message = "Credit amount must be a positive integer"


class DuplicateBooking(BookingDomainError):
    default_message = "You already have an active booking for this course"


class InsufficientCredit(BookingDomainError):
    default_message = "No remaining credits"


class CourseFull(BookingDomainError):
    default_message = "Course has reached its maximum number of participants"


class AlreadyCancelled(BookingDomainError):
    default_message = "Booking is already cancelled"


class CourseNotFound(BookingDomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Course not found"


class BookingNotFound(BookingDomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No active booking found"


class CreditPackageNotFound(BookingDomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Credit package not found"


class UserNotFound(BookingDomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class StoreUnavailable(BookingDomainError):
    """
    The data store could not complete the unit of work in bounded time.

    The outcome of the attempted write is rolled back, so the caller may retry,
    but should re-check the active booking before re-submitting a booking.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
    default_message = "Booking store is temporarily unavailable, please retry"


class DuplicateCreditPackage(BookingDomainError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A credit package with this name already exists"
