# coursecart/api/routers/orders.py
from fastapi import APIRouter, Depends, Header, Query, Response
from sqlalchemy.orm import Session

from coursecart.api.deps import get_lock_service, get_notification_service
from coursecart.data.database import get_db
from coursecart.domain.schemas import CheckoutIn, OrderOut, OrderStatusOut, PaymentAttemptOut
from coursecart.services.cart_service import CartService
from coursecart.services.checkout_service import CheckoutService
from coursecart.services.lock_service import LockService
from coursecart.services.notification_service import NotificationService
from coursecart.services.order_service import OrderService
from coursecart.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    response: Response,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key", max_length=128),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    """
    Tworzy zamowienie z koszyka.
    Ten sam Idempotency-Key zwraca to samo zamowienie (replayed=true, status 200).
    Bez naglowka klucz liczony jest z wersji koszyka.
    """
    svc = CheckoutService(db, CartService(db=db, lock_service=lock_service))
    order = svc.create_checkout(payload.user_id, idempotency_key or None)
    if order["replayed"]:
        response.status_code = 200
    return order


@router.get("/{order_id}", response_model=OrderStatusOut)
def get_order(
    order_id: int,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """
    Zamowienie + proby platnosci + zapisy na kursy.
    """
    return OrderService(db).get_order_status(user_id, order_id)


@router.post("/{order_id}/payments", response_model=PaymentAttemptOut, status_code=201)
def start_payment(
    order_id: int,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return PaymentService(db, notification_service).start_payment(user_id, order_id)
