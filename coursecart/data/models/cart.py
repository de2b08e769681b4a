#coursecart/data/models/cart.py
import uuid

from sqlalchemy import Column, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship, validates

from coursecart.data.database import Base
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.errors import IntegrityViolation

ZERO_UUID = uuid.UUID(int=0)


class CartModel(Base):
    __tablename__ = "carts"

    # id nadawane w konstruktorze, nie przy flushu - koszyk nigdy nie ma pustego id
    id = Column(Uuid, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    version = Column(Integer, nullable=False, default=1)
    expires_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", uuid.uuid4())
        super().__init__(**kwargs)

    @validates("id")
    def _validate_id(self, key, value):
        if value is None or value == ZERO_UUID:
            raise IntegrityViolation("Cart id must never be empty")
        return value

    @validates("user_id")
    def _validate_user_id(self, key, value):
        if not value or value <= 0:
            raise IntegrityViolation("Cart owner must be set", user_id=value)
        return value
