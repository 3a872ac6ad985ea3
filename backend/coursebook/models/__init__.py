from coursebook.models.user import User
from coursebook.models.course import Course
from coursebook.models.credit import CreditPackage, CreditPurchase
from coursebook.models.booking import CourseBooking

__all__ = ["User", "Course", "CreditPackage", "CreditPurchase", "CourseBooking"]
