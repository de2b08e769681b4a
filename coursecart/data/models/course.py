#coursecart/data/models/course.py
from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint

from coursecart.data.database import Base
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.statuses import CourseStatus


class CourseModel(Base):
    """Model katalogu kursow - tylko odczyt, CRUD kursow jest po stronie panelu admina."""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    thumbnail_url = Column(String(1000), nullable=True)
    instructor_name = Column(String(200), nullable=True)

    price = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=CourseStatus.DRAFT.value)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),)

    @property
    def is_purchasable(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value
