from decimal import Decimal

from sqlalchemy import Column, Integer, ForeignKey, Numeric, String, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship, validates

from coursecart.data.database import Base
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.errors import IntegrityViolation
from coursecart.domain.snapshots import CourseSnapshot


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)

    # snapshot kursu z chwili dodania
    title = Column(String(255), nullable=False)
    thumbnail_url = Column(String(1000), nullable=True)
    instructor_name = Column(String(200), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    added_at = Column(UTCDateTime, nullable=False, default=utcnow)

    cart = relationship("CartModel", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "course_id", name="uq_cart_items_cart_course"),
        CheckConstraint("price >= 0", name="ck_cart_items_price_non_negative"),
    )

    @classmethod
    def from_snapshot(cls, cart_id, snapshot: CourseSnapshot) -> "CartItemModel":
        return cls(
            cart_id=cart_id,
            course_id=snapshot.course_id,
            title=snapshot.title,
            thumbnail_url=snapshot.thumbnail_url,
            instructor_name=snapshot.instructor_name,
            price=snapshot.price,
        )

    @property
    def snapshot(self) -> CourseSnapshot:
        return CourseSnapshot(
            course_id=self.course_id,
            title=self.title,
            price=Decimal(self.price),
            thumbnail_url=self.thumbnail_url,
            instructor_name=self.instructor_name,
        )

    @validates("price")
    def _validate_price(self, key, value):
        if value is None or Decimal(value) < 0:
            raise IntegrityViolation("Cart item price must be >= 0", course_id=self.course_id)
        return value

    @validates("title")
    def _validate_title(self, key, value):
        if not value or not value.strip():
            raise IntegrityViolation("Cart item title must not be empty", course_id=self.course_id)
        return value
