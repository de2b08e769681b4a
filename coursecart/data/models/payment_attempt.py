#coursecart/data/models/payment_attempt.py
from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, Text
from sqlalchemy.orm import relationship, validates

from coursecart.data.database import Base
from coursecart.data.types import UTCDateTime, utcnow
from coursecart.domain.errors import IntegrityViolation
from coursecart.domain.statuses import PaymentMethod, PaymentStatus


class PaymentAttemptModel(Base):
    """
    Jedna proba platnosci recznej (paragon + decyzja admina) dla zamowienia.
    Odrzucona albo wygasla proba zostaje w bazie bez zmian, ponowienie = nowy wiersz.
    """

    __tablename__ = "payment_attempts"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(Integer, nullable=False, default=PaymentMethod.MANUAL.value)
    status = Column(Integer, nullable=False, default=PaymentStatus.DRAFT.value, index=True)
    tracking_code = Column(String(32), nullable=False, unique=True)

    receipt_image_url = Column(String(1000), nullable=True)
    receipt_file_name = Column(String(255), nullable=True)
    receipt_uploaded_at = Column(UTCDateTime, nullable=True)

    admin_reviewed_by = Column(String(100), nullable=True)
    admin_decision = Column(String(20), nullable=True)
    admin_decision_reason = Column(Text, nullable=True)
    admin_reviewed_at = Column(UTCDateTime, nullable=True)

    # refund nie nadpisuje danych zatwierdzenia
    refunded_by = Column(String(100), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(UTCDateTime, nullable=True)

    expires_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = relationship("OrderModel")

    @property
    def payment_status(self) -> PaymentStatus:
        return PaymentStatus(self.status)

    @validates("method")
    def _validate_method(self, key, value):
        if value != PaymentMethod.MANUAL:
            raise IntegrityViolation("Only manual payment method is supported", method=value)
        return value
