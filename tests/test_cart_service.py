from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from coursecart.data.models import CartItemModel, CartModel, CourseModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import (
    AlreadyEnrolled,
    CourseNotFound,
    CourseNotPublished,
    EmptyCart,
    IntegrityViolation,
    PriceDrift,
)
from coursecart.domain.statuses import CourseStatus
from coursecart.services.enrollment_service import EnrollmentService

from conftest import ALICE, BOB, DRAFT_COURSE, FREE_COURSE, PYTHON_COURSE, SQL_COURSE


def test_get_cart_without_cart_returns_empty_view(cart_service):
    cart = cart_service.get_cart(ALICE)

    assert cart["cart_id"] is None
    assert cart["items"] == []
    assert cart["total"] == Decimal("0.00")


def test_first_add_creates_cart_with_snapshot(cart_service):
    cart = cart_service.add_course(ALICE, PYTHON_COURSE)

    assert cart["cart_id"] is not None
    assert [i["course_id"] for i in cart["items"]] == [PYTHON_COURSE]
    item = cart["items"][0]
    assert item["title"] == "Python od podstaw"
    assert item["instructor_name"] == "Jan Kowalski"
    assert item["price"] == Decimal("100000")
    assert cart["total"] == Decimal("100000")


def test_double_add_leaves_single_item(cart_service, db):
    first = cart_service.add_course(ALICE, PYTHON_COURSE)
    second = cart_service.add_course(ALICE, PYTHON_COURSE)

    rows = db.execute(select(CartItemModel).where(CartItemModel.cart_id == first["cart_id"])).scalars().all()
    assert len(rows) == 1
    assert second["items"] == first["items"]
    # no-op nie zmienia wersji
    assert second["version"] == first["version"]


def test_each_mutation_bumps_version(cart_service):
    v1 = cart_service.add_course(ALICE, PYTHON_COURSE)["version"]
    v2 = cart_service.add_course(ALICE, SQL_COURSE)["version"]
    v3 = cart_service.remove_course(ALICE, SQL_COURSE)["version"]

    assert v1 < v2 < v3


def test_mutations_run_under_user_lock(cart_service, lock_service):
    cart_service.add_course(ALICE, PYTHON_COURSE)
    cart_service.remove_course(ALICE, PYTHON_COURSE)

    assert lock_service.calls == [f"user-{ALICE}", f"user-{ALICE}"]
    assert lock_service.held == set()


def test_carts_are_per_user(cart_service):
    alice = cart_service.add_course(ALICE, PYTHON_COURSE)
    bob = cart_service.add_course(BOB, PYTHON_COURSE)

    assert alice["cart_id"] != bob["cart_id"]


@pytest.mark.parametrize(
    "course_id, error",
    [(999, CourseNotFound), (DRAFT_COURSE, CourseNotPublished)],
)
def test_add_rejects_unavailable_course(cart_service, course_id, error):
    with pytest.raises(error):
        cart_service.add_course(ALICE, course_id)


def test_add_rejects_course_user_already_owns(cart_service, db):
    EnrollmentService(db).enroll_free_course(ALICE, FREE_COURSE)

    with pytest.raises(AlreadyEnrolled):
        cart_service.add_course(ALICE, FREE_COURSE)


def test_remove_missing_item_is_noop(cart_service):
    before = cart_service.add_course(ALICE, PYTHON_COURSE)
    after = cart_service.remove_course(ALICE, SQL_COURSE)

    assert after["items"] == before["items"]
    assert after["version"] == before["version"]


def test_remove_without_cart_is_noop(cart_service):
    assert cart_service.remove_course(ALICE, PYTHON_COURSE)["items"] == []


def test_snapshot_survives_catalog_price_change(cart_service, db):
    cart_service.add_course(ALICE, PYTHON_COURSE)

    course = db.get(CourseModel, PYTHON_COURSE)
    course.price = Decimal("120000")
    db.commit()

    cart = cart_service.get_cart(ALICE)
    assert cart["items"][0]["price"] == Decimal("100000")

    with pytest.raises(PriceDrift):
        cart_service.validate_for_checkout(ALICE)


def test_validate_without_cart(cart_service):
    with pytest.raises(EmptyCart):
        cart_service.validate_for_checkout(ALICE)


def test_validate_returns_checkout_view(cart_service):
    cart_service.add_course(ALICE, PYTHON_COURSE)
    cart_service.add_course(ALICE, SQL_COURSE)

    view = cart_service.validate_for_checkout(ALICE)

    assert view.total == Decimal("150000")
    assert [i.course_id for i in view.items] == [PYTHON_COURSE, SQL_COURSE]


def test_add_to_expired_cart_starts_over(cart_service, checkout_service, db):
    old = cart_service.add_course(ALICE, PYTHON_COURSE)
    cart_service.add_course(ALICE, SQL_COURSE)
    db.execute(
        update(CartModel)
        .where(CartModel.id == old["cart_id"])
        .values(expires_at=utcnow() - timedelta(seconds=1))
    )
    db.commit()
    db.expire_all()

    cart = cart_service.add_course(ALICE, PYTHON_COURSE)

    assert cart["cart_id"] == old["cart_id"]
    assert [i["course_id"] for i in cart["items"]] == [PYTHON_COURSE]
    assert cart["version"] > old["version"]
    assert cart["expires_at"] > utcnow()

    order = checkout_service.create_checkout(ALICE)
    assert order["total"] == Decimal("100000")


def test_blank_catalog_title_is_not_added(cart_service, db):
    db.add(CourseModel(id=50, title="", price=Decimal("1000"), status=CourseStatus.PUBLISHED.value))
    db.commit()

    with pytest.raises(IntegrityViolation):
        cart_service.add_course(ALICE, 50)

    assert db.execute(select(func.count(CartItemModel.id))).scalar_one() == 0
