from sqlalchemy import Column, Integer, ForeignKey, Numeric, Index, text

from coursecart.data.database import Base
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.statuses import EnrollmentStatus, EnrollmentPaymentStatus

_ACTIVE = text(f"enrollment_status = {EnrollmentStatus.ACTIVE.value}")


class CourseEnrollmentModel(Base):
    __tablename__ = "course_enrollments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)
    # null dla darmowych kursow
    payment_attempt_id = Column(Integer, ForeignKey("payment_attempts.id"), nullable=True, index=True)

    payment_status = Column(Integer, nullable=False, default=EnrollmentPaymentStatus.PAID.value)
    total_amount = Column(Numeric(12, 2), nullable=False)
    enrollment_status = Column(Integer, nullable=False, default=EnrollmentStatus.ACTIVE.value)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        # max jeden aktywny zapis na (user, course)
        Index(
            "uq_course_enrollments_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
    )
