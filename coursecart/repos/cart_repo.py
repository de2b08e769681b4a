# coursecart/repos/cart_repo.py
from datetime import datetime
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from coursecart.data.models.cart import CartModel
from coursecart.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: UUID) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, cart_id: UUID) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, cart_id: UUID, course_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.course_id == course_id,
            )
        )
        return result.rowcount

    def delete_cart_items(self, cart_id: UUID, course_ids: Iterable[int]) -> int:
        course_ids = list(course_ids)
        if not course_ids:
            return 0
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.course_id.in_(course_ids),
            )
        )
        return result.rowcount

    def bump_version(self, cart_id: UUID, expires_at: datetime | None = None) -> int:
        # atomowy inkrement w bazie, rownolegle zmiany innych pozycji nie gubia sie
        values = {"version": CartModel.version + 1}
        if expires_at is not None:
            values["expires_at"] = expires_at
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def refresh(self, cart: CartModel) -> CartModel:
        self.db.refresh(cart)
        return cart

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
