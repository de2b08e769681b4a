# coursecart/services/cart_validation_service.py
"""
Czysta walidacja koszyka - bez sesji, bez zapisu.

Serwis dostaje juz pobrane dane (pozycje koszyka, zywe kursy, zapisy usera)
i albo rzuca ValidationError, albo zwraca widok gotowy do checkoutu.
Dryf ceny jest tylko zglaszany, snapshot nigdy nie jest poprawiany automatycznie.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Collection, List, Mapping, Sequence

from coursecart.domain.errors import (
    AlreadyEnrolled,
    CartExpired,
    CourseNotFound,
    CourseNotPublished,
    DuplicateCartItem,
    EmptyCart,
    PriceDrift,
)
from coursecart.domain.snapshots import CourseSnapshot, snapshot_total
from coursecart.utils.settings import PRICE_DRIFT_POLICY, PRICE_DRIFT_TOLERANCE

BLOCK = "block"
WARN = "warn"


@dataclass(frozen=True)
class PriceDriftPolicy:
    mode: str = BLOCK
    tolerance: Decimal = Decimal("0")

    def __post_init__(self):
        if self.mode not in (BLOCK, WARN):
            raise ValueError(f"Unknown price drift policy: {self.mode}")
        if Decimal(self.tolerance) < 0:
            raise ValueError("Price drift tolerance must be >= 0")

    @classmethod
    def from_settings(cls) -> "PriceDriftPolicy":
        return cls(mode=PRICE_DRIFT_POLICY.lower(), tolerance=PRICE_DRIFT_TOLERANCE)


@dataclass(frozen=True)
class PriceDriftWarning:
    course_id: int
    snapshot_price: Decimal
    live_price: Decimal

    @property
    def difference(self) -> Decimal:
        return self.live_price - self.snapshot_price


@dataclass(frozen=True)
class CheckoutView:
    cart_id: Any
    user_id: int
    cart_version: int
    items: List[CourseSnapshot]
    total: Decimal
    warnings: List[PriceDriftWarning] = field(default_factory=list)


class CartValidationService:
    def __init__(self, drift_policy: PriceDriftPolicy | None = None):
        self.drift_policy = drift_policy or PriceDriftPolicy.from_settings()

    def check_course_addable(
        self,
        course: Any | None,
        course_id: int,
        cart_course_ids: Collection[int],
        already_enrolled: bool,
    ) -> CourseSnapshot:
        """
        Kolejnosc bledow: nie istnieje -> nieopublikowany -> juz w koszyku -> juz zapisany.
        Zwraca swiezy snapshot kursu do zapisania w pozycji koszyka.
        """
        if course is None:
            raise CourseNotFound(f"Course {course_id} does not exist", course_id=course_id)

        if not course.is_purchasable:
            raise CourseNotPublished(f"Course {course_id} is not available for purchase", course_id=course_id)

        if course_id in cart_course_ids:
            raise DuplicateCartItem(f"Course {course_id} is already in the cart", course_id=course_id)

        if already_enrolled:
            raise AlreadyEnrolled(f"User is already enrolled in course {course_id}", course_id=course_id)

        return CourseSnapshot.from_course(course)

    def validate_for_checkout(
        self,
        cart: Any,
        items: Sequence[CourseSnapshot],
        live_courses: Mapping[int, Any],
        enrolled_course_ids: Collection[int],
        now: datetime,
    ) -> CheckoutView:
        if not items:
            raise EmptyCart("Cart is empty")

        if cart.expires_at is not None and cart.expires_at <= now:
            raise CartExpired("Cart has expired", expired_at=cart.expires_at.isoformat())

        warnings: List[PriceDriftWarning] = []

        for item in items:
            live = live_courses.get(item.course_id)
            if live is None:
                raise CourseNotFound(f"Course {item.course_id} no longer exists", course_id=item.course_id)
            if not live.is_purchasable:
                raise CourseNotPublished(
                    f"Course {item.course_id} is no longer available", course_id=item.course_id
                )
            if item.course_id in enrolled_course_ids:
                raise AlreadyEnrolled(
                    f"User is already enrolled in course {item.course_id}", course_id=item.course_id
                )

            drift = self._check_drift(item, Decimal(live.price))
            if drift is not None:
                warnings.append(drift)

        if warnings and self.drift_policy.mode == BLOCK:
            raise PriceDrift(
                "Course prices changed since they were added to the cart",
                courses=[w.course_id for w in warnings],
            )

        return CheckoutView(
            cart_id=cart.id,
            user_id=cart.user_id,
            cart_version=cart.version,
            items=list(items),
            total=snapshot_total(items),
            warnings=warnings,
        )

    def _check_drift(self, item: CourseSnapshot, live_price: Decimal) -> PriceDriftWarning | None:
        if abs(live_price - item.price) > self.drift_policy.tolerance:
            return PriceDriftWarning(
                course_id=item.course_id,
                snapshot_price=item.price,
                live_price=live_price,
            )
        return None
