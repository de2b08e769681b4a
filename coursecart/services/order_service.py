# coursecart/services/order_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from coursecart.data.types import utcnow
from coursecart.domain.errors import AccessDenied, OrderNotFound, storage_errors
from coursecart.repos.order_repo import OrderRepo
from coursecart.repos.payment_repo import PaymentRepo
from coursecart.services.checkout_service import order_view
from coursecart.services.enrollment_service import EnrollmentService, enrollment_view
from coursecart.services.payment_transitions import PaymentTransitions, attempt_view
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Odczyt zamowien.
    Separacja od CheckoutService - tu nic nie tworzymy.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.payment_repo = PaymentRepo(db)
        self.transitions = PaymentTransitions(db)
        self.enrollment_service = EnrollmentService(db)

    def get_order_status(self, user_id: int, order_id: int) -> Dict[str, Any]:
        """
        Use Case: status zamowienia (Query).
        Termin zywej proby jest sprawdzany przy odczycie - wygasniecie zapisujemy od razu.
        """
        with storage_errors():
            try:
                order = self.repo.get_order(order_id)

                if not order:
                    raise OrderNotFound(f"Order {order_id} does not exist")

                if order.user_id != user_id:
                    raise AccessDenied("Order belongs to another user")

                now = utcnow()
                live = self.payment_repo.get_live_attempt(order.id)
                if live and self.transitions.expire_if_due(live, now):
                    self.db.commit()
                    logger.info(f"Order {order.id}: payment {live.id} expired on read")

                result = order_view(order)
                result["payments"] = [attempt_view(a) for a in self.payment_repo.list_for_order(order.id)]
                result["enrollments"] = [
                    enrollment_view(e) for e in self.enrollment_service.list_for_order(order.id)
                ]
                return result

            except Exception:
                self.db.rollback()
                raise
