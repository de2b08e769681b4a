# coursecart/services/checkout_service.py
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coursecart.data.models.cart import ZERO_UUID
from coursecart.data.models.order import OrderModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import ConflictError, EmptyCart, IdempotencyKeyExpired, IntegrityViolation, storage_errors
from coursecart.domain.identifiers import derive_idempotency_key, new_order_number
from coursecart.domain.snapshots import dump_snapshot
from coursecart.domain.statuses import OrderStatus
from coursecart.repos.cart_repo import CartRepo
from coursecart.repos.order_repo import OrderRepo
from coursecart.services.cart_service import CartService
from coursecart.services.enrollment_service import EnrollmentService
from coursecart.utils.settings import ORDER_IDEMPOTENCY_TTL_SECONDS
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Serwis odpowiedzialny za tworzenie zamowien z koszyka.
    Separacja od CartService - koszyk sie nie zmienia przy checkoucie.
    """

    def __init__(
        self,
        db: Session,
        cart_service: CartService,
        enrollment_service: EnrollmentService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.cart_service = cart_service
        self.enrollment_service = enrollment_service or EnrollmentService(db)

    def create_checkout(self, user_id: int, idempotency_key: str | None = None) -> Dict[str, Any]:
        """
        Use Case: checkout koszyka.

        1. Ten sam (user, klucz) -> to samo zamowienie (replay), bez nowego zapisu
        2. Walidacja koszyka (CartValidationService)
        3. Snapshot pozycji + total liczony ze snapshotu
        4. Insert zamowienia PendingPayment; unique (user_id, idempotency_key) rozstrzyga wyscig
        5. Zamowienie za 0 jest od razu Paid + zapisy na kursy
        """
        with storage_errors():
            try:
                return self._create_checkout(user_id, idempotency_key)
            except Exception:
                self.db.rollback()
                raise

    def _create_checkout(self, user_id: int, idempotency_key: str | None) -> Dict[str, Any]:
        now = utcnow()
        cart = self.cart_repo.get_cart_by_user(user_id)

        derived = idempotency_key is None
        if derived:
            if cart is None:
                raise EmptyCart("Cart is empty")
            idempotency_key = derive_idempotency_key(cart.id, cart.version)

        existing = self.repo.get_by_idempotency_key(user_id, idempotency_key)
        if existing:
            if not self._is_replay_window_over(existing, now):
                logger.info(f"Idempotent replay: order {existing.id} for key {idempotency_key}")
                return order_view(existing, replayed=True)
            if not derived:
                raise IdempotencyKeyExpired(
                    "Idempotency key already used for an expired checkout, use a new key",
                    order_id=existing.id,
                )
            # klucz wyliczony z wersji koszyka - nowa wersja = nowy nonce
            self.cart_repo.bump_version(cart.id)
            self.cart_repo.refresh(cart)
            idempotency_key = derive_idempotency_key(cart.id, cart.version)

        view = self.cart_service.build_checkout_view(cart, user_id, now)
        for w in view.warnings:
            logger.warning(
                f"Price drift accepted for course {w.course_id}: snapshot {w.snapshot_price}, live {w.live_price}"
            )

        is_free = view.total == Decimal("0")
        order = OrderModel(
            order_number=new_order_number(now),
            user_id=user_id,
            cart_id=view.cart_id,
            cart_snapshot=dump_snapshot(view.items),
            idempotency_key=idempotency_key,
            total=view.total,
            status=(OrderStatus.PAID if is_free else OrderStatus.PENDING_PAYMENT).value,
            created_at=now,
            idempotency_expires_at=now + timedelta(seconds=ORDER_IDEMPOTENCY_TTL_SECONDS),
        )
        self._assert_cart_reference(order)

        try:
            self.repo.create_order(order)
        except IntegrityError:
            # przegrany wyscig - zwroc zamowienie zwyciezcy
            self.db.rollback()
            winner = self.repo.get_by_idempotency_key(user_id, idempotency_key)
            if winner is None:
                raise ConflictError("Concurrent checkout could not be resolved, retry", key=idempotency_key)
            logger.info(f"Concurrent checkout for key {idempotency_key} resolved to order {winner.id}")
            return order_view(winner, replayed=True)

        if is_free:
            # darmowe zamowienie omija PaymentAttempt
            self.enrollment_service.enroll_for_order(order)

        self.db.commit()
        logger.info(
            f"Order {order.id} ({order.order_number}) created from cart {order.cart_id}, "
            f"total {order.total}, status {order.status}"
        )
        return order_view(order)

    @staticmethod
    def _is_replay_window_over(order: OrderModel, now: datetime) -> bool:
        return order.idempotency_expires_at <= now

    @staticmethod
    def _assert_cart_reference(order: OrderModel):
        if order.cart_id is None or order.cart_id == ZERO_UUID:
            logger.error(f"Order {order.order_number} has no cart reference")
            raise IntegrityViolation("Order cart reference is empty", order_number=order.order_number)


def order_view(order: OrderModel, replayed: bool = False) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "cart_id": order.cart_id,
        "status": order.status,
        "total": order.total,
        "items": [i.to_dict() for i in order.items],
        "idempotency_key": order.idempotency_key,
        "created_at": order.created_at,
        "replayed": replayed,
    }
