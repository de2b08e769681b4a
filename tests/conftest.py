import os

# przed importem coursecart - settings czytane przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("PRICE_DRIFT_POLICY", "block")

from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from coursecart.celery_worker import celery_app
from coursecart.data.database import init_db, make_engine
from coursecart.data.models import CourseModel, PaymentAttemptModel, UserModel
from coursecart.data.types import utcnow
from coursecart.domain.statuses import CourseStatus
from coursecart.services.admin_review_service import AdminReviewService
from coursecart.services.cart_service import CartService
from coursecart.services.checkout_service import CheckoutService
from coursecart.services.payment_service import PaymentService, ReceiptUpload

celery_app.conf.task_always_eager = True

ALICE = 1
BOB = 2

PYTHON_COURSE = 1
SQL_COURSE = 2
DRAFT_COURSE = 3
FREE_COURSE = 4


class FakeLockService:
    """Lock w pamieci - testy sa jednowatkowe, liczymy tylko wywolania."""

    def __init__(self):
        self.held = set()
        self.calls = []

    @contextmanager
    def cart_lock(self, cart_key, ttl=10, wait=3.0):
        self.calls.append(cart_key)
        self.held.add(cart_key)
        try:
            yield
        finally:
            self.held.discard(cart_key)


class RecordingNotifications:
    def __init__(self):
        self.receipts = []
        self.decisions = []

    def receipt_received(self, attempt_id, tracking_code):
        self.receipts.append((attempt_id, tracking_code))

    def payment_decided(self, user_id, attempt_id, tracking_code, decision):
        self.decisions.append((user_id, attempt_id, decision))


@pytest.fixture
def engine(tmp_path):
    # plik, nie :memory: - kilka sesji musi widziec te same dane
    eng = make_engine(f"sqlite:///{tmp_path / 'coursecart.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    session.add_all([
        UserModel(id=ALICE, name="alice"),
        UserModel(id=BOB, name="bob"),
        CourseModel(
            id=PYTHON_COURSE,
            title="Python od podstaw",
            price=Decimal("100000"),
            instructor_name="Jan Kowalski",
            thumbnail_url="https://cdn.example.com/python.png",
            status=CourseStatus.PUBLISHED.value,
        ),
        CourseModel(id=SQL_COURSE, title="SQL w praktyce", price=Decimal("50000"), status=CourseStatus.PUBLISHED.value),
        CourseModel(id=DRAFT_COURSE, title="Kurs w przygotowaniu", price=Decimal("20000"), status=CourseStatus.DRAFT.value),
        CourseModel(id=FREE_COURSE, title="Wprowadzenie", price=Decimal("0"), status=CourseStatus.PUBLISHED.value),
    ])
    session.commit()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def cart_service(db, lock_service):
    return CartService(db, lock_service)


@pytest.fixture
def checkout_service(db, cart_service):
    return CheckoutService(db, cart_service)


@pytest.fixture
def payment_service(db, notifications):
    return PaymentService(db, notifications)


@pytest.fixture
def admin_service(db, notifications):
    return AdminReviewService(db, notification_service=notifications)


@pytest.fixture
def receipt():
    return ReceiptUpload(
        image_url="https://files.example.com/receipts/r1.jpg",
        file_name="r1.jpg",
        uploaded_at=utcnow(),
    )


@pytest.fixture
def placed_order(cart_service, checkout_service):
    """Zamowienie alice na dwa kursy: 100000 + 50000."""
    cart_service.add_course(ALICE, PYTHON_COURSE)
    cart_service.add_course(ALICE, SQL_COURSE)
    return checkout_service.create_checkout(ALICE)


@pytest.fixture
def awaiting_approval(placed_order, payment_service, receipt):
    attempt = payment_service.start_payment(ALICE, placed_order["id"])
    return payment_service.upload_receipt(ALICE, attempt["id"], receipt)


@pytest.fixture
def overdue(db):
    """Przesuwa termin proby w przeszlosc."""

    def _overdue(attempt_id, seconds=60):
        db.execute(
            update(PaymentAttemptModel)
            .where(PaymentAttemptModel.id == attempt_id)
            .values(expires_at=utcnow() - timedelta(seconds=seconds))
        )
        db.commit()
        db.expire_all()

    return _overdue
