import pytest

from coursecart.domain.errors import InvalidTransition
from coursecart.domain.statuses import (
    EXPIRABLE_STATUSES,
    OrderStatus,
    PaymentEvent,
    PaymentStatus,
    order_status_for,
    transition,
)

S = PaymentStatus
E = PaymentEvent


@pytest.mark.parametrize(
    "current, event, expected",
    [
        (S.DRAFT, E.SUBMIT, S.PENDING_PAYMENT),
        (S.PENDING_PAYMENT, E.BEGIN_RECEIPT_UPLOAD, S.AWAITING_RECEIPT_UPLOAD),
        (S.PENDING_PAYMENT, E.UPLOAD_RECEIPT, S.AWAITING_ADMIN_APPROVAL),
        (S.AWAITING_RECEIPT_UPLOAD, E.UPLOAD_RECEIPT, S.AWAITING_ADMIN_APPROVAL),
        (S.AWAITING_ADMIN_APPROVAL, E.APPROVE, S.PAID),
        (S.AWAITING_ADMIN_APPROVAL, E.REJECT, S.FAILED),
        (S.PAID, E.REFUND, S.REFUNDED),
    ],
)
def test_allowed_transitions(current, event, expected):
    assert transition(current, event) == expected


@pytest.mark.parametrize("current", sorted(EXPIRABLE_STATUSES))
def test_live_statuses_can_expire(current):
    assert transition(current, E.EXPIRE) == S.EXPIRED


@pytest.mark.parametrize(
    "current, event",
    [
        (S.PAID, E.APPROVE),
        (S.FAILED, E.APPROVE),
        (S.EXPIRED, E.APPROVE),
        (S.EXPIRED, E.UPLOAD_RECEIPT),
        (S.FAILED, E.UPLOAD_RECEIPT),
        (S.PENDING_PAYMENT, E.APPROVE),
        (S.AWAITING_ADMIN_APPROVAL, E.REFUND),
        (S.REFUNDED, E.REFUND),
        (S.PAID, E.EXPIRE),
        (S.DRAFT, E.EXPIRE),
    ],
)
def test_forbidden_transitions(current, event):
    with pytest.raises(InvalidTransition):
        transition(current, event)


def test_terminal_statuses_have_no_way_back():
    for status in (S.FAILED, S.EXPIRED, S.REFUNDED):
        for event in PaymentEvent:
            with pytest.raises(InvalidTransition):
                transition(status, event)


def test_transition_accepts_raw_status_codes():
    assert transition(3, E.APPROVE) == S.PAID


def test_status_codes_match_stored_values():
    assert [s.value for s in PaymentStatus] == list(range(8))
    assert S.AWAITING_ADMIN_APPROVAL.label == "AwaitingAdminApproval"


@pytest.mark.parametrize(
    "status, order_status",
    [
        (S.PENDING_PAYMENT, OrderStatus.PENDING_PAYMENT),
        (S.AWAITING_RECEIPT_UPLOAD, OrderStatus.PENDING_PAYMENT),
        (S.AWAITING_ADMIN_APPROVAL, OrderStatus.AWAITING_ADMIN_APPROVAL),
        (S.PAID, OrderStatus.PAID),
        (S.FAILED, OrderStatus.PENDING_PAYMENT),
        (S.EXPIRED, OrderStatus.PENDING_PAYMENT),
        (S.REFUNDED, OrderStatus.REFUNDED),
    ],
)
def test_order_follows_attempt(status, order_status):
    assert order_status_for(status) == order_status
