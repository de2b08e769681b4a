#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from coursecart.data.models.user import UserModel
from coursecart.data.models.course import CourseModel
from coursecart.data.models.cart import CartModel
from coursecart.data.models.cart_item import CartItemModel
from coursecart.data.models.order import OrderModel
from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.data.models.enrollment import CourseEnrollmentModel

__all__ = [
    "UserModel",
    "CourseModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "PaymentAttemptModel",
    "CourseEnrollmentModel",
]
