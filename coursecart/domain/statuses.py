# coursecart/domain/statuses.py
"""
Statusy i maszyna stanow PaymentAttempt.

Jedyne miejsce gdzie liczymy nastepny status. Serwisy nie przypisuja
statusu recznie - zawsze przez transition().
Kody liczbowe sa takie same jak w istniejacej bazie (raporty SQL na nich polegaja).
"""
import enum

from coursecart.domain.errors import InvalidTransition


class PaymentStatus(enum.IntEnum):
    DRAFT = 0
    PENDING_PAYMENT = 1
    AWAITING_RECEIPT_UPLOAD = 2
    AWAITING_ADMIN_APPROVAL = 3
    PAID = 4
    FAILED = 5
    EXPIRED = 6
    REFUNDED = 7

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    PaymentStatus.DRAFT: "Draft",
    PaymentStatus.PENDING_PAYMENT: "PendingPayment",
    PaymentStatus.AWAITING_RECEIPT_UPLOAD: "AwaitingReceiptUpload",
    PaymentStatus.AWAITING_ADMIN_APPROVAL: "AwaitingAdminApproval",
    PaymentStatus.PAID: "Paid",
    PaymentStatus.FAILED: "Failed",
    PaymentStatus.EXPIRED: "Expired",
    PaymentStatus.REFUNDED: "Refunded",
}

# Paid nie jest "terminal" dla refundu, ale jest terminal dla cyklu platnosci
TERMINAL_STATUSES = frozenset({
    PaymentStatus.PAID,
    PaymentStatus.FAILED,
    PaymentStatus.EXPIRED,
    PaymentStatus.REFUNDED,
})

EXPIRABLE_STATUSES = frozenset({
    PaymentStatus.PENDING_PAYMENT,
    PaymentStatus.AWAITING_RECEIPT_UPLOAD,
    PaymentStatus.AWAITING_ADMIN_APPROVAL,
})

# statusy w ktorych paragon moze byc wypelniony
RECEIPT_STATUSES = frozenset({
    PaymentStatus.AWAITING_ADMIN_APPROVAL,
    PaymentStatus.PAID,
    PaymentStatus.FAILED,
    PaymentStatus.EXPIRED,
    PaymentStatus.REFUNDED,
})


class PaymentMethod(enum.IntEnum):
    MANUAL = 2


class PaymentEvent(str, enum.Enum):
    SUBMIT = "submit"
    BEGIN_RECEIPT_UPLOAD = "begin_receipt_upload"
    UPLOAD_RECEIPT = "upload_receipt"
    APPROVE = "approve"
    REJECT = "reject"
    EXPIRE = "expire"
    REFUND = "refund"


_TRANSITIONS: dict[tuple[PaymentStatus, PaymentEvent], PaymentStatus] = {
    (PaymentStatus.DRAFT, PaymentEvent.SUBMIT): PaymentStatus.PENDING_PAYMENT,
    (PaymentStatus.PENDING_PAYMENT, PaymentEvent.BEGIN_RECEIPT_UPLOAD): PaymentStatus.AWAITING_RECEIPT_UPLOAD,
    (PaymentStatus.PENDING_PAYMENT, PaymentEvent.UPLOAD_RECEIPT): PaymentStatus.AWAITING_ADMIN_APPROVAL,
    (PaymentStatus.AWAITING_RECEIPT_UPLOAD, PaymentEvent.UPLOAD_RECEIPT): PaymentStatus.AWAITING_ADMIN_APPROVAL,
    (PaymentStatus.AWAITING_ADMIN_APPROVAL, PaymentEvent.APPROVE): PaymentStatus.PAID,
    (PaymentStatus.AWAITING_ADMIN_APPROVAL, PaymentEvent.REJECT): PaymentStatus.FAILED,
    (PaymentStatus.PENDING_PAYMENT, PaymentEvent.EXPIRE): PaymentStatus.EXPIRED,
    (PaymentStatus.AWAITING_RECEIPT_UPLOAD, PaymentEvent.EXPIRE): PaymentStatus.EXPIRED,
    (PaymentStatus.AWAITING_ADMIN_APPROVAL, PaymentEvent.EXPIRE): PaymentStatus.EXPIRED,
    (PaymentStatus.PAID, PaymentEvent.REFUND): PaymentStatus.REFUNDED,
}


def transition(current: PaymentStatus, event: PaymentEvent) -> PaymentStatus:
    current = PaymentStatus(current)
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransition(
            f"Cannot apply '{event.value}' to payment in status {current.label}",
            status=current.label,
            event=event.value,
        )


class OrderStatus(str, enum.Enum):
    PENDING_PAYMENT = "PendingPayment"
    AWAITING_ADMIN_APPROVAL = "AwaitingAdminApproval"
    PAID = "Paid"
    REFUNDED = "Refunded"


_ORDER_STATUS_FOR_ATTEMPT = {
    PaymentStatus.DRAFT: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.PENDING_PAYMENT: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.AWAITING_RECEIPT_UPLOAD: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.AWAITING_ADMIN_APPROVAL: OrderStatus.AWAITING_ADMIN_APPROVAL,
    PaymentStatus.PAID: OrderStatus.PAID,
    # odrzucona/wygasla proba - zamowienie znowu czeka na platnosc (retry)
    PaymentStatus.FAILED: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.EXPIRED: OrderStatus.PENDING_PAYMENT,
    PaymentStatus.REFUNDED: OrderStatus.REFUNDED,
}


def order_status_for(attempt_status: PaymentStatus) -> OrderStatus:
    return _ORDER_STATUS_FOR_ATTEMPT[PaymentStatus(attempt_status)]


class AdminDecision(str, enum.Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"
    REFUNDED = "Refunded"


class EnrollmentStatus(enum.IntEnum):
    ACTIVE = 0
    REFUNDED = 1


class EnrollmentPaymentStatus(enum.IntEnum):
    UNPAID = 0
    PENDING = 1
    PAID = 2
    REFUNDED = 3


class CourseStatus(str, enum.Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"
