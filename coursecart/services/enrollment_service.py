# coursecart/services/enrollment_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List
from uuid import UUID

from sqlalchemy.orm import Session

from coursecart.data.models.enrollment import CourseEnrollmentModel
from coursecart.data.models.order import OrderModel
from coursecart.domain.errors import (
    AlreadyEnrolled,
    CourseNotFound,
    CourseNotFree,
    CourseNotPublished,
    storage_errors,
)
from coursecart.domain.statuses import EnrollmentPaymentStatus, EnrollmentStatus
from coursecart.repos.cart_repo import CartRepo
from coursecart.repos.course_repo import CourseRepo
from coursecart.repos.enrollment_repo import EnrollmentRepo
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class EnrollmentService:
    """
    Tworzenie zapisow na kursy.

    enroll_for_order / revoke_for_attempt dzialaja w transakcji wywolujacego
    (zatwierdzenie platnosci albo checkout darmowego zamowienia) i nie commituja.
    enroll_free_course to osobny use case z wlasnym commitem.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = EnrollmentRepo(db)
        self.course_repo = CourseRepo(db)
        self.cart_repo = CartRepo(db)

    def enroll_for_order(self, order: OrderModel, payment_attempt_id: int | None = None) -> List[CourseEnrollmentModel]:
        created = []

        for item in order.items:
            if self.repo.has_active_enrollment(order.user_id, item.course_id):
                # np. podwojne zatwierdzenie albo kurs kupiony w innym zamowieniu
                logger.info(
                    f"User {order.user_id} already enrolled in course {item.course_id}, skipping (order {order.id})"
                )
                continue

            enrollment = CourseEnrollmentModel(
                user_id=order.user_id,
                course_id=item.course_id,
                order_id=order.id,
                payment_attempt_id=payment_attempt_id,
                payment_status=EnrollmentPaymentStatus.PAID.value,
                total_amount=item.price,
                enrollment_status=EnrollmentStatus.ACTIVE.value,
            )
            if self.repo.insert_if_absent(enrollment):
                created.append(enrollment)
            else:
                logger.info(
                    f"Concurrent enrollment for user {order.user_id} course {item.course_id}, skipping"
                )

        self._clear_cart(order.cart_id, [i.course_id for i in order.items])

        logger.info(f"Order {order.id}: created {len(created)} enrollment(s)")
        return created

    def revoke_for_attempt(self, payment_attempt_id: int) -> int:
        # rekord zostaje (audyt), zmienia sie tylko status
        revoked = self.repo.mark_refunded(
            payment_attempt_id,
            enrollment_status=EnrollmentStatus.REFUNDED.value,
            payment_status=EnrollmentPaymentStatus.REFUNDED.value,
        )
        logger.info(f"Payment attempt {payment_attempt_id}: {revoked} enrollment(s) marked refunded")
        return revoked

    def enroll_free_course(self, user_id: int, course_id: int) -> Dict[str, Any]:
        """
        Skrot dla darmowych kursow - bez zamowienia i bez PaymentAttempt.
        Duplikat jest odrzucany (AlreadyEnrolled), nie scalany.
        """
        with storage_errors():
            try:
                course = self.course_repo.get_course(course_id)
                if course is None:
                    raise CourseNotFound(f"Course {course_id} does not exist", course_id=course_id)
                if not course.is_purchasable:
                    raise CourseNotPublished(f"Course {course_id} is not available", course_id=course_id)
                if Decimal(course.price) != 0:
                    raise CourseNotFree(f"Course {course_id} is not free", course_id=course_id)
                if self.repo.has_active_enrollment(user_id, course_id):
                    raise AlreadyEnrolled(f"User is already enrolled in course {course_id}", course_id=course_id)

                enrollment = CourseEnrollmentModel(
                    user_id=user_id,
                    course_id=course_id,
                    payment_status=EnrollmentPaymentStatus.PAID.value,
                    total_amount=Decimal("0.00"),
                    enrollment_status=EnrollmentStatus.ACTIVE.value,
                )
                if not self.repo.insert_if_absent(enrollment):
                    raise AlreadyEnrolled(f"User is already enrolled in course {course_id}", course_id=course_id)

                cart = self.cart_repo.get_cart_by_user(user_id)
                if cart:
                    self._clear_cart(cart.id, [course_id])

                self.db.commit()
                logger.info(f"Free enrollment {enrollment.id}: user {user_id} course {course_id}")
                return enrollment_view(enrollment)

            except Exception:
                self.db.rollback()
                raise

    def list_for_order(self, order_id: int) -> List[CourseEnrollmentModel]:
        return self.repo.list_for_order(order_id)

    def _clear_cart(self, cart_id: UUID, course_ids: Iterable[int]) -> int:
        cart = self.cart_repo.get_cart(cart_id)
        if not cart:
            return 0
        removed = self.cart_repo.delete_cart_items(cart.id, course_ids)
        if removed:
            self.cart_repo.bump_version(cart.id)
            logger.info(f"Cleared {removed} purchased item(s) from cart {cart.id}")
        return removed


def enrollment_view(e: CourseEnrollmentModel) -> Dict[str, Any]:
    return {
        "id": e.id,
        "user_id": e.user_id,
        "course_id": e.course_id,
        "order_id": e.order_id,
        "payment_attempt_id": e.payment_attempt_id,
        "payment_status": EnrollmentPaymentStatus(e.payment_status).name,
        "enrollment_status": EnrollmentStatus(e.enrollment_status).name,
        "total_amount": e.total_amount,
        "created_at": e.created_at,
    }
