# coursecart/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime
from uuid import UUID

from coursecart.domain.statuses import AdminDecision


class CourseIn(BaseModel):
    """Schema dla dodawania kursu do koszyka."""

    course_id: int = Field(..., gt=0, description="ID kursu (musi byc > 0)")


class CartItemOut(BaseModel):
    """Pozycja koszyka - snapshot kursu z chwili dodania."""

    course_id: int
    title: str
    thumbnail_url: str | None = None
    instructor_name: str | None = None
    price: Decimal
    added_at: datetime | None = None


class CartOut(BaseModel):
    cart_id: UUID | None
    user_id: int
    version: int
    items: List[CartItemOut]
    total: Decimal
    expires_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PriceDriftOut(BaseModel):
    course_id: int
    snapshot_price: Decimal
    live_price: Decimal


class CheckoutPreviewOut(BaseModel):
    """Wynik walidacji koszyka przed checkoutem."""

    cart_id: UUID
    user_id: int
    cart_version: int
    items: List[CartItemOut]
    total: Decimal
    warnings: List[PriceDriftOut] = []

    model_config = ConfigDict(from_attributes=True)


class CheckoutIn(BaseModel):
    user_id: int = Field(..., gt=0, description="ID uzytkownika (musi byc > 0)")


class OrderItemOut(BaseModel):
    course_id: int
    title: str
    price: Decimal
    thumbnail_url: str | None = None
    instructor_name: str | None = None


class PaymentAttemptOut(BaseModel):
    id: int
    order_id: int
    user_id: int
    tracking_code: str
    amount: Decimal
    method: str
    status: str
    receipt_image_url: str | None = None
    receipt_file_name: str | None = None
    receipt_uploaded_at: datetime | None = None
    admin_reviewed_by: str | None = None
    admin_decision: str | None = None
    admin_decision_reason: str | None = None
    admin_reviewed_at: datetime | None = None
    refunded_by: str | None = None
    refunded_at: datetime | None = None
    expires_at: datetime
    created_at: datetime


class EnrollmentOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    order_id: int | None = None
    payment_attempt_id: int | None = None
    payment_status: str
    enrollment_status: str
    total_amount: Decimal
    created_at: datetime | None = None


class OrderOut(BaseModel):
    """Schema dla zamowienia (response)."""

    id: int
    order_number: str
    user_id: int
    cart_id: UUID
    status: str
    total: Decimal
    items: List[OrderItemOut]
    idempotency_key: str
    created_at: datetime
    replayed: bool = False

    model_config = ConfigDict(from_attributes=True)


class OrderStatusOut(OrderOut):
    payments: List[PaymentAttemptOut] = []
    enrollments: List[EnrollmentOut] = []


class ReceiptIn(BaseModel):
    """Paragon jest juz w storage plikow - tu tylko referencja."""

    image_url: str = Field(..., min_length=1, max_length=1000)
    file_name: str = Field(..., min_length=1, max_length=255)
    uploaded_at: datetime


class DecisionIn(BaseModel):
    reviewer: str = Field(..., min_length=1, max_length=100, description="Login admina")
    decision: AdminDecision
    reason: str | None = None


class RefundIn(BaseModel):
    reviewer: str = Field(..., min_length=1, max_length=100)
    reason: str | None = None


class FreeEnrollmentIn(BaseModel):
    course_id: int = Field(..., gt=0)


class PendingApprovalOut(BaseModel):
    id: int
    tracking_code: str
    order_id: int
    order_number: str
    user_id: int
    user_name: str
    user_email: str | None = None
    amount: Decimal
    receipt_image_url: str | None = None
    receipt_file_name: str | None = None
    receipt_uploaded_at: datetime | None = None
    items: List[OrderItemOut]
    days_waiting: int
    expires_at: datetime
    created_at: datetime


class StatusCountOut(BaseModel):
    status: int
    status_name: str
    count: int


class ReviewerStatsOut(BaseModel):
    reviewer: str
    total_reviews: int
    approved: int
    rejected: int


class PaymentStatsOut(BaseModel):
    statuses: List[StatusCountOut]
    reviewers: List[ReviewerStatsOut]


class IntegrityCheckOut(BaseModel):
    count: int
    ids: List[int]
