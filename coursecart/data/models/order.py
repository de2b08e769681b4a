from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, Text, Uuid, UniqueConstraint, event, inspect
from sqlalchemy.orm import validates

from coursecart.data.database import Base
from coursecart.data.models.cart import ZERO_UUID
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.errors import IntegrityViolation
from coursecart.domain.snapshots import load_snapshot
from coursecart.domain.statuses import OrderStatus

# pola ustalane przy checkoucie, pozniej tylko do odczytu (audyt)
IMMUTABLE_FIELDS = ("user_id", "cart_id", "cart_snapshot", "total", "idempotency_key", "order_number")


def _is_empty_ref(value) -> bool:
    return value is None or value == "" or value == ZERO_UUID


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    cart_id = Column(Uuid, ForeignKey("carts.id"), nullable=False)

    cart_snapshot = Column(Text, nullable=False)
    idempotency_key = Column(String(128), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    status = Column(String(32), nullable=False, default=OrderStatus.PENDING_PAYMENT.value)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
    idempotency_expires_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
    )

    def __init__(self, **kwargs):
        if _is_empty_ref(kwargs.get("cart_id")):
            raise IntegrityViolation("Order created without a cart reference")
        super().__init__(**kwargs)

    @validates("cart_id")
    def _validate_cart_id(self, key, value):
        if _is_empty_ref(value):
            raise IntegrityViolation("Order cart reference must never be empty")
        return value

    @property
    def items(self):
        return load_snapshot(self.cart_snapshot)

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)


@event.listens_for(OrderModel, "before_insert")
def _assert_cart_reference(mapper, connection, target):
    if _is_empty_ref(target.cart_id):
        raise IntegrityViolation("Order cart reference is empty at commit", order_number=target.order_number)


@event.listens_for(OrderModel, "before_update")
def _guard_immutable_fields(mapper, connection, target):
    state = inspect(target)
    changed = [name for name in IMMUTABLE_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise IntegrityViolation("Attempt to modify immutable order fields", order_id=target.id, fields=changed)
