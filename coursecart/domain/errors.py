# coursecart/domain/errors.py
"""
Bledy domenowe zwracane przez serwisy.

Kazdy blad ma staly `code` (warstwa prezentacji tlumaczy go na komunikat)
oraz `http_status` i `retryable` uzywane przez handler w API.
Surowe wyjatki SQLAlchemy nie wychodza poza serwisy - patrz storage_errors().
"""
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class CoreError(Exception):
    code = "CORE_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


# ---------------------------------------------------------------------------
# ValidationError - zly input albo stan, zwracane wprost do wywolujacego
# ---------------------------------------------------------------------------

class ValidationError(CoreError):
    code = "VALIDATION_ERROR"


class CourseNotFound(ValidationError):
    code = "COURSE_NOT_FOUND"
    http_status = 404


class CourseNotPublished(ValidationError):
    code = "COURSE_NOT_PUBLISHED"


class CourseNotFree(ValidationError):
    code = "COURSE_NOT_FREE"


class DuplicateCartItem(ValidationError):
    code = "DUPLICATE_CART_ITEM"
    http_status = 409


class AlreadyEnrolled(ValidationError):
    code = "ALREADY_ENROLLED"
    http_status = 409


class EmptyCart(ValidationError):
    code = "EMPTY_CART"


class CartExpired(ValidationError):
    code = "CART_EXPIRED"


class PriceDrift(ValidationError):
    code = "PRICE_DRIFT"
    http_status = 409


class IdempotencyKeyExpired(ValidationError):
    code = "IDEMPOTENCY_KEY_EXPIRED"
    http_status = 409


class OrderNotFound(ValidationError):
    code = "ORDER_NOT_FOUND"
    http_status = 404


class OrderNotPayable(ValidationError):
    code = "ORDER_NOT_PAYABLE"
    http_status = 409


class PaymentAttemptNotFound(ValidationError):
    code = "PAYMENT_ATTEMPT_NOT_FOUND"
    http_status = 404


class PaymentAttemptExpired(ValidationError):
    code = "PAYMENT_ATTEMPT_EXPIRED"
    http_status = 409


class InvalidTransition(ValidationError):
    code = "INVALID_STATUS_TRANSITION"
    http_status = 409


class IncompleteReceipt(ValidationError):
    code = "INCOMPLETE_RECEIPT"


class MissingReviewer(ValidationError):
    code = "MISSING_REVIEWER"


class MissingDecisionReason(ValidationError):
    code = "MISSING_DECISION_REASON"


class AccessDenied(ValidationError):
    code = "ACCESS_DENIED"
    http_status = 403


# ---------------------------------------------------------------------------
# ConflictError - przegrany wyscig, rozwiazywany wewnatrz serwisu
# ---------------------------------------------------------------------------

class ConflictError(CoreError):
    code = "CONFLICT"
    http_status = 409
    retryable = True


# ---------------------------------------------------------------------------
# IntegrityViolation - blad strukturalny, nigdy nie polykany
# ---------------------------------------------------------------------------

class IntegrityViolation(CoreError):
    code = "INTERNAL_ERROR"
    http_status = 500

    def to_dict(self) -> dict:
        # szczegoly tylko w logach
        return {
            "code": self.code,
            "message": "Internal error",
            "retryable": False,
        }


# ---------------------------------------------------------------------------
# ExternalFailure - baza/redis niedostepne, mozna ponowic
# ---------------------------------------------------------------------------

class ExternalFailure(CoreError):
    code = "STORAGE_UNAVAILABLE"
    http_status = 503
    retryable = True


class CartBusy(ExternalFailure):
    code = "CART_BUSY"


@contextmanager
def storage_errors():
    """
    Tlumaczy bledy warstwy storage na bledy domenowe.
    Oczekiwane konflikty unikalnosci serwisy lapia same, zanim tu dotra;
    IntegrityError ktory przeszedl az tutaj oznacza zlamany constraint.
    """
    try:
        yield
    except IntegrityError as e:
        logger.error(f"Unhandled constraint violation: {e.orig}")
        raise IntegrityViolation("Constraint violation", error=str(e.orig)) from e
    except DBAPIError as e:
        logger.warning(f"Storage failure: {e.__class__.__name__}: {e.orig}")
        raise ExternalFailure("Storage unavailable") from e
    except SQLAlchemyError as e:
        logger.error(f"Unexpected storage error: {e}")
        raise ExternalFailure("Storage unavailable") from e
