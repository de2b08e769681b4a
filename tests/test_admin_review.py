"""Rownolegle decyzje admina - dwie sesje na tej samej bazie."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from coursecart.data.models import CourseEnrollmentModel, OrderModel, PaymentAttemptModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import PaymentAttemptExpired
from coursecart.services.admin_review_service import AdminReviewService
from coursecart.services.enrollment_service import EnrollmentService
from coursecart.services.payment_service import PaymentService

from conftest import ALICE, RecordingNotifications


def active_enrollments(session):
    return session.execute(
        select(CourseEnrollmentModel.course_id, func.count(CourseEnrollmentModel.id))
        .where(CourseEnrollmentModel.user_id == ALICE)
        .group_by(CourseEnrollmentModel.course_id)
    ).all()


def test_double_approval_enrolls_once(awaiting_approval, session_factory):
    first_admin = session_factory()
    second_admin = session_factory()
    try:
        # obaj admini otworzyli ta sama probe, jeszcze w statusie AwaitingAdminApproval
        stale = first_admin.get(PaymentAttemptModel, awaiting_approval["id"])
        assert stale.status == 3

        first_notes = RecordingNotifications()
        second_notes = RecordingNotifications()

        winner = AdminReviewService(second_admin, notification_service=second_notes).submit_admin_decision(
            awaiting_approval["id"], "admin2", "Approved"
        )
        loser = AdminReviewService(first_admin, notification_service=first_notes).submit_admin_decision(
            awaiting_approval["id"], "admin1", "Approved"
        )

        assert winner["status"] == "Paid"
        assert loser["status"] == "Paid"
        assert loser["admin_reviewed_by"] == "admin2"

        counts = dict(active_enrollments(first_admin))
        assert counts and all(n == 1 for n in counts.values())

        assert len(second_notes.decisions) == 1
        assert first_notes.decisions == []
    finally:
        first_admin.close()
        second_admin.close()


def test_decision_after_sweep_expired_attempt(awaiting_approval, session_factory):
    admin = session_factory()
    sweeper = session_factory()
    try:
        # admin otworzyl probe zanim sweep ja wygasil
        stale = admin.get(PaymentAttemptModel, awaiting_approval["id"])
        assert stale.status == 3

        expired = PaymentService(sweeper).expire_due_attempts(now=utcnow() + timedelta(days=30))
        assert expired == 1

        notes = RecordingNotifications()
        with pytest.raises(PaymentAttemptExpired):
            AdminReviewService(admin, notification_service=notes).submit_admin_decision(
                awaiting_approval["id"], "admin1", "Approved"
            )

        admin.expire_all()
        attempt = admin.get(PaymentAttemptModel, awaiting_approval["id"])
        assert attempt.status == 6
        assert attempt.admin_reviewed_by is None
        assert admin.get(OrderModel, awaiting_approval["order_id"]).status == "PendingPayment"
        assert active_enrollments(admin) == []
        assert notes.decisions == []
    finally:
        admin.close()
        sweeper.close()


def test_approve_after_reject_returns_rejected(awaiting_approval, admin_service):
    admin_service.submit_admin_decision(awaiting_approval["id"], "admin1", "Rejected", reason="Nieczytelny")

    late = admin_service.submit_admin_decision(awaiting_approval["id"], "admin2", "Approved")

    assert late["status"] == "Failed"
    assert late["admin_reviewed_by"] == "admin1"


def test_enrollment_already_held_is_skipped(awaiting_approval, admin_service, db):
    # kurs kupiony rownolegle innym zamowieniem
    order = admin_service.order_repo.get_order(awaiting_approval["order_id"])
    EnrollmentService(db).enroll_for_order(order)
    db.commit()

    admin_service.submit_admin_decision(awaiting_approval["id"], "admin1", "Approved")

    counts = dict(active_enrollments(db))
    assert all(n == 1 for n in counts.values())
