from .users import User, BankDetail
from .catalog import Company, Book, Course, CourseBundle, Event, CoInstructor
from .discounts import Coupon, PromoCode, Affiliate
from .orders import Order, OrderItem, CoInstructorEarning, AffiliateSale
from .withdrawals import WithdrawRequest
from .notifications import Notification

__all__ = [
    'User', 'BankDetail',
    'Company', 'Book', 'Course', 'CourseBundle', 'Event', 'CoInstructor',
    'Coupon', 'PromoCode', 'Affiliate',
    'Order', 'OrderItem', 'CoInstructorEarning', 'AffiliateSale',
    'WithdrawRequest',
    'Notification',
]
