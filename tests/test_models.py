import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from coursecart.data.models import CartItemModel, CartModel, OrderModel, PaymentAttemptModel
from coursecart.data.models.cart import ZERO_UUID
from coursecart.data.types import utcnow
from coursecart.domain.errors import IntegrityViolation
from coursecart.domain.snapshots import CourseSnapshot, dump_snapshot, load_snapshot

from conftest import ALICE


def order_kwargs(**overrides):
    now = utcnow()
    kwargs = dict(
        order_number="ORD-TEST-1",
        user_id=ALICE,
        cart_id=uuid.uuid4(),
        cart_snapshot="[]",
        idempotency_key="key-1",
        total=Decimal("0"),
        status="PendingPayment",
        idempotency_expires_at=now + timedelta(days=1),
    )
    kwargs.update(overrides)
    return kwargs


class TestCart:
    def test_id_assigned_at_construction(self):
        cart = CartModel(user_id=ALICE, expires_at=utcnow())

        assert isinstance(cart.id, uuid.UUID)
        assert cart.id != ZERO_UUID

    @pytest.mark.parametrize("bad_id", [None, ZERO_UUID])
    def test_empty_id_rejected(self, bad_id):
        with pytest.raises(IntegrityViolation):
            CartModel(id=bad_id, user_id=ALICE, expires_at=utcnow())

    def test_owner_required(self):
        with pytest.raises(IntegrityViolation):
            CartModel(user_id=0, expires_at=utcnow())


class TestCartItem:
    def test_negative_price_rejected(self):
        with pytest.raises(IntegrityViolation):
            CartItemModel(cart_id=uuid.uuid4(), course_id=1, title="Kurs", price=Decimal("-1"))

    def test_blank_title_rejected(self):
        with pytest.raises(IntegrityViolation):
            CartItemModel(cart_id=uuid.uuid4(), course_id=1, title="  ", price=Decimal("1"))


class TestOrder:
    @pytest.mark.parametrize("cart_id", [None, ZERO_UUID, ""])
    def test_cart_reference_required(self, cart_id):
        with pytest.raises(IntegrityViolation):
            OrderModel(**order_kwargs(cart_id=cart_id))

    def test_cart_reference_cannot_be_cleared(self):
        order = OrderModel(**order_kwargs())

        with pytest.raises(IntegrityViolation):
            order.cart_id = None

    def test_snapshot_is_immutable_once_stored(self, db):
        cart = CartModel(user_id=ALICE, expires_at=utcnow())
        db.add(cart)
        db.flush()
        order = OrderModel(**order_kwargs(cart_id=cart.id))
        db.add(order)
        db.commit()

        order.total = Decimal("1")
        with pytest.raises(IntegrityViolation):
            db.flush()
        db.rollback()

    def test_status_can_change(self, db):
        cart = CartModel(user_id=ALICE, expires_at=utcnow())
        db.add(cart)
        db.flush()
        order = OrderModel(**order_kwargs(cart_id=cart.id))
        db.add(order)
        db.commit()

        order.status = "Paid"
        db.commit()

        assert db.get(OrderModel, order.id).status == "Paid"


def test_only_manual_payment_method():
    with pytest.raises(IntegrityViolation):
        PaymentAttemptModel(method=1)


def test_snapshot_json_keeps_decimal_prices():
    items = [CourseSnapshot(course_id=1, title="Kurs", price=Decimal("100000.50"), instructor_name="Jan")]

    loaded = load_snapshot(dump_snapshot(items))

    assert loaded == items
