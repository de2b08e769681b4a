import pytest

from coursecart.data.models import OrderModel, PaymentAttemptModel
from coursecart.domain.errors import PaymentAttemptExpired
from coursecart.services.order_service import OrderService
from coursecart.tasks import expire as expire_task

from conftest import ALICE


def test_expired_attempt_keeps_its_fields_and_allows_retry(placed_order, payment_service, db, overdue):
    attempt = payment_service.start_payment(ALICE, placed_order["id"])
    overdue(attempt["id"])
    before = db.get(PaymentAttemptModel, attempt["id"])
    snapshot = (before.amount, before.tracking_code, before.expires_at, before.receipt_image_url)

    retry = payment_service.start_payment(ALICE, placed_order["id"])

    assert retry["id"] != attempt["id"]
    expired = db.get(PaymentAttemptModel, attempt["id"])
    assert expired.status == 6
    assert (expired.amount, expired.tracking_code, expired.expires_at, expired.receipt_image_url) == snapshot


def test_receipt_after_deadline_is_rejected(placed_order, payment_service, receipt, db, overdue):
    attempt = payment_service.start_payment(ALICE, placed_order["id"])
    overdue(attempt["id"])

    with pytest.raises(PaymentAttemptExpired):
        payment_service.upload_receipt(ALICE, attempt["id"], receipt)

    db.expire_all()
    assert db.get(PaymentAttemptModel, attempt["id"]).status == 6
    assert db.get(OrderModel, placed_order["id"]).status == "PendingPayment"


def test_admin_cannot_approve_expired_attempt(awaiting_approval, admin_service, db, overdue):
    overdue(awaiting_approval["id"])

    with pytest.raises(PaymentAttemptExpired):
        admin_service.submit_admin_decision(awaiting_approval["id"], "admin1", "Approved")

    db.expire_all()
    assert db.get(PaymentAttemptModel, awaiting_approval["id"]).status == 6
    assert db.get(OrderModel, awaiting_approval["order_id"]).status == "PendingPayment"


def test_expiry_does_not_clear_cart(awaiting_approval, payment_service, cart_service, overdue):
    overdue(awaiting_approval["id"])

    assert payment_service.expire_due_attempts() == 1
    assert len(cart_service.get_cart(ALICE)["items"]) == 2


def test_order_read_expires_overdue_attempt(placed_order, payment_service, db, overdue):
    attempt = payment_service.start_payment(ALICE, placed_order["id"])
    overdue(attempt["id"])

    status = OrderService(db).get_order_status(ALICE, placed_order["id"])

    assert [p["status"] for p in status["payments"]] == ["Expired"]
    assert status["status"] == "PendingPayment"


def test_sweep_skips_live_attempts(placed_order, payment_service):
    payment_service.start_payment(ALICE, placed_order["id"])

    assert payment_service.expire_due_attempts() == 0


def test_sweep_task_uses_own_session(placed_order, payment_service, session_factory, overdue, monkeypatch):
    attempt = payment_service.start_payment(ALICE, placed_order["id"])
    overdue(attempt["id"])
    monkeypatch.setattr(expire_task, "SessionLocal", session_factory)

    result = expire_task.expire_payment_attempts_task.delay().get()

    assert result == {"expired": 1}
