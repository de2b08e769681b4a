# coursecart/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from coursecart.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.id == order_id).with_for_update()
        ).scalar_one_or_none()

    def get_by_idempotency_key(self, user_id: int, key: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.user_id == user_id,
                OrderModel.idempotency_key == key,
            )
        ).scalar_one_or_none()

    def update_order_status(self, order: OrderModel, status: str) -> OrderModel:
        if order.status != status:
            order.status = status
            self.db.flush()
        return order
