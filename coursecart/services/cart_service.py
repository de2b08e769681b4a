from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coursecart.data.models.cart import CartModel
from coursecart.data.models.cart_item import CartItemModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import DuplicateCartItem, EmptyCart, storage_errors
from coursecart.repos.cart_repo import CartRepo
from coursecart.repos.course_repo import CourseRepo
from coursecart.repos.enrollment_repo import EnrollmentRepo
from coursecart.services.cart_validation_service import CartValidationService, CheckoutView
from coursecart.services.lock_service import LockService
from coursecart.utils.settings import CART_TTL_SECONDS
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs dla domeny cart
    commands (add, remove) modyfikuja stan pod lockiem koszyka
    query (get, validate) tylko odczyt
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        validator: CartValidationService | None = None,
    ):
        self.db = db
        self.repo = CartRepo(db)
        self.course_repo = CourseRepo(db)
        self.enrollment_repo = EnrollmentRepo(db)
        self.lock_service = lock_service
        self.validator = validator or CartValidationService()

    @staticmethod
    def _lock_key(user_id: int) -> str:
        return f"user-{user_id}"

    #query - odczyt
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        with storage_errors():
            cart = self.repo.get_cart_by_user(user_id)
            if not cart:
                return self._empty_view(user_id)
            return self._cart_view(cart)

    def validate_for_checkout(self, user_id: int, now: datetime | None = None) -> CheckoutView:
        with storage_errors():
            cart = self.repo.get_cart_by_user(user_id)
            return self.build_checkout_view(cart, user_id, now)

    def build_checkout_view(self, cart: CartModel | None, user_id: int, now: datetime | None = None) -> CheckoutView:
        """Wspolne dla validate i checkoutu - dziala w biezacej transakcji."""
        if cart is None:
            # brak koszyka traktujemy jak pusty koszyk
            raise EmptyCart("Cart is empty")
        items = [i.snapshot for i in self.repo.get_cart_items(cart.id)]
        course_ids = [i.course_id for i in items]
        return self.validator.validate_for_checkout(
            cart=cart,
            items=items,
            live_courses=self.course_repo.get_courses(course_ids),
            enrolled_course_ids=self.enrollment_repo.active_course_ids(user_id, course_ids),
            now=now or utcnow(),
        )

    #commands
    def add_course(self, user_id: int, course_id: int) -> Dict[str, Any]:
        with storage_errors(), self.lock_service.cart_lock(self._lock_key(user_id)):
            try:
                cart = self._get_or_create_cart(user_id)
                if cart.expires_at is not None and cart.expires_at <= utcnow():
                    self._reset_expired_cart(cart)
                items = self.repo.get_cart_items(cart.id)
                course = self.course_repo.get_course(course_id)

                try:
                    snapshot = self.validator.check_course_addable(
                        course=course,
                        course_id=course_id,
                        cart_course_ids={i.course_id for i in items},
                        already_enrolled=self.enrollment_repo.has_active_enrollment(user_id, course_id),
                    )
                except DuplicateCartItem:
                    # drugie identyczne dodanie to no-op
                    logger.info(f"Course {course_id} already in cart {cart.id}, nothing to do")
                    self.repo.commit()
                    return self._cart_view(cart)

                logger.info(f"Adding course {course_id} to cart {cart.id} at price {snapshot.price}")
                try:
                    self.repo.add_cart_item(CartItemModel.from_snapshot(cart.id, snapshot))
                except IntegrityError:
                    # wyscig na unique (cart_id, course_id) - ktos dodal ten sam kurs
                    self.repo.rollback()
                    logger.info(f"Course {course_id} was added concurrently, treating as no-op")
                    return self.get_cart(user_id)

                # kazda akcja przedluza waznosc koszyka
                new_expires = utcnow() + timedelta(seconds=CART_TTL_SECONDS)
                self.repo.bump_version(cart.id, expires_at=new_expires)
                self.repo.commit()
                self.repo.refresh(cart)

                return self._cart_view(cart)

            except Exception as e:
                logger.info(f"Add course {course_id} for user {user_id} failed: {e}")
                self.repo.rollback()
                raise

    def remove_course(self, user_id: int, course_id: int) -> Dict[str, Any]:
        with storage_errors(), self.lock_service.cart_lock(self._lock_key(user_id)):
            try:
                cart = self.repo.get_cart_by_user(user_id)
                if not cart:
                    return self._empty_view(user_id)

                removed = self.repo.delete_cart_item(cart.id, course_id)
                if not removed:
                    # brak pozycji to nie blad
                    return self._cart_view(cart)

                self.repo.bump_version(cart.id)
                self.repo.commit()
                self.repo.refresh(cart)
                logger.info(f"Course {course_id} removed from cart {cart.id}, version {cart.version}")

                return self._cart_view(cart)

            except Exception:
                self.repo.rollback()
                raise

    def _get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        #tworzymy nowy koszyk, id nadane w konstruktorze
        cart = CartModel(
            user_id=user_id,
            version=1,
            expires_at=utcnow() + timedelta(seconds=CART_TTL_SECONDS),
        )
        created = self.repo.create_cart(cart)
        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def _reset_expired_cart(self, cart: CartModel) -> None:
        # stare snapshoty wypadaja razem z koszykiem, nowa wersja = nowy klucz checkoutu
        removed = self.repo.delete_cart_items(cart.id, [i.course_id for i in self.repo.get_cart_items(cart.id)])
        self.repo.bump_version(cart.id, expires_at=utcnow() + timedelta(seconds=CART_TTL_SECONDS))
        self.repo.refresh(cart)
        logger.info(f"Cart {cart.id} expired, dropped {removed} stale item(s), version {cart.version}")

    def _cart_view(self, cart: CartModel) -> Dict[str, Any]:
        items = self.repo.get_cart_items(cart.id)
        total = sum((Decimal(i.price) for i in items), Decimal("0.00"))

        #dict przeksztalcany w jsona
        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "version": cart.version,
            "items": [
                {
                    "course_id": i.course_id,
                    "title": i.title,
                    "thumbnail_url": i.thumbnail_url,
                    "instructor_name": i.instructor_name,
                    "price": i.price,
                    "added_at": i.added_at,
                }
                for i in items
            ],
            "total": total,
            "expires_at": cart.expires_at,
        }

    @staticmethod
    def _empty_view(user_id: int) -> Dict[str, Any]:
        return {
            "cart_id": None,
            "user_id": user_id,
            "version": 0,
            "items": [],
            "total": Decimal("0.00"),
            "expires_at": None,
        }
