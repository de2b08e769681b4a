# coursecart/services/integrity_service.py
"""
Zapytania kontrolne i raporty dla panelu admina. Tylko odczyt.

integrity_report() zwraca dla kazdej reguly liczbe i id wierszy ktore ja lamia.
Pusta lista wszedzie = baza spojna.
"""
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session

from coursecart.data.models.cart import CartModel
from coursecart.data.models.order import OrderModel
from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.data.models.user import UserModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import storage_errors
from coursecart.domain.snapshots import load_snapshot
from coursecart.domain.statuses import AdminDecision, PaymentMethod, PaymentStatus, RECEIPT_STATUSES
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)

PA = PaymentAttemptModel

_RECEIPT_COLUMNS = (PA.receipt_image_url, PA.receipt_file_name, PA.receipt_uploaded_at)


class IntegrityService:
    def __init__(self, db: Session):
        self.db = db

    def integrity_report(self) -> Dict[str, Dict[str, Any]]:
        checks = {
            "awaiting_approval_without_receipt": select(PA.id).where(
                PA.status == PaymentStatus.AWAITING_ADMIN_APPROVAL.value,
                or_(
                    *[c.is_(None) for c in _RECEIPT_COLUMNS],
                    PA.receipt_image_url == "",
                    PA.receipt_file_name == "",
                ),
            ),
            "paid_without_reviewer": select(PA.id).where(
                PA.status == PaymentStatus.PAID.value,
                or_(PA.admin_reviewed_by.is_(None), PA.admin_reviewed_by == ""),
            ),
            "non_manual_method": select(PA.id).where(PA.method != PaymentMethod.MANUAL.value),
            "unknown_status": select(PA.id).where(PA.status.not_in([s.value for s in PaymentStatus])),
            "receipt_in_wrong_status": select(PA.id).where(
                PA.receipt_image_url.is_not(None),
                PA.status.not_in([s.value for s in RECEIPT_STATUSES]),
            ),
            "partial_receipt": select(PA.id).where(
                or_(*[c.is_not(None) for c in _RECEIPT_COLUMNS]),
                or_(*[c.is_(None) for c in _RECEIPT_COLUMNS]),
            ),
            "attempts_without_order": select(PA.id)
            .outerjoin(OrderModel, OrderModel.id == PA.order_id)
            .where(OrderModel.id.is_(None)),
            "attempts_without_user": select(PA.id)
            .outerjoin(UserModel, UserModel.id == PA.user_id)
            .where(UserModel.id.is_(None)),
            "orders_without_cart": select(OrderModel.id)
            .outerjoin(CartModel, CartModel.id == OrderModel.cart_id)
            .where(CartModel.id.is_(None)),
            "orders_with_empty_cart_ref": select(OrderModel.id).where(
                or_(OrderModel.cart_id.is_(None), OrderModel.cart_snapshot == "")
            ),
        }

        report = {}
        with storage_errors():
            for name, query in checks.items():
                ids = sorted(self.db.execute(query).scalars())
                report[name] = {"count": len(ids), "ids": ids}
                if ids:
                    logger.warning(f"Integrity check '{name}' failed for {len(ids)} row(s): {ids[:20]}")
        return report

    def list_pending_approvals(self, now: datetime | None = None) -> List[Dict[str, Any]]:
        """Kolejka admina - najstarszy paragon pierwszy."""
        now = now or utcnow()

        with storage_errors():
            rows = self.db.execute(
                select(PA, OrderModel.order_number, OrderModel.cart_snapshot, UserModel.name, UserModel.email)
                .join(OrderModel, OrderModel.id == PA.order_id)
                .join(UserModel, UserModel.id == PA.user_id)
                .where(PA.status == PaymentStatus.AWAITING_ADMIN_APPROVAL.value)
                .order_by(PA.receipt_uploaded_at.asc(), PA.id.asc())
            ).all()

        result = []
        for attempt, order_number, cart_snapshot, user_name, user_email in rows:
            uploaded = attempt.receipt_uploaded_at
            result.append({
                "id": attempt.id,
                "tracking_code": attempt.tracking_code,
                "order_id": attempt.order_id,
                "order_number": order_number,
                "user_id": attempt.user_id,
                "user_name": user_name,
                "user_email": user_email,
                "amount": attempt.amount,
                "receipt_image_url": attempt.receipt_image_url,
                "receipt_file_name": attempt.receipt_file_name,
                "receipt_uploaded_at": uploaded,
                "items": [i.to_dict() for i in load_snapshot(cart_snapshot)],
                "days_waiting": (now - uploaded).days if uploaded else 0,
                "expires_at": attempt.expires_at,
                "created_at": attempt.created_at,
            })
        return result

    def status_summary(self) -> List[Dict[str, Any]]:
        with storage_errors():
            rows = self.db.execute(
                select(PA.status, func.count(PA.id)).group_by(PA.status).order_by(PA.status)
            ).all()

        summary = []
        for status, count in rows:
            try:
                name = PaymentStatus(status).label
            except ValueError:
                name = "Unknown"
            summary.append({"status": status, "status_name": name, "count": count})
        return summary

    def reviewer_stats(self) -> List[Dict[str, Any]]:
        approved = case((PA.admin_decision == AdminDecision.APPROVED.value, 1), else_=0)
        rejected = case((PA.admin_decision == AdminDecision.REJECTED.value, 1), else_=0)

        with storage_errors():
            rows = self.db.execute(
                select(
                    PA.admin_reviewed_by,
                    func.count(PA.id),
                    func.sum(approved),
                    func.sum(rejected),
                )
                .where(and_(PA.admin_reviewed_by.is_not(None), PA.admin_reviewed_by != ""))
                .group_by(PA.admin_reviewed_by)
                .order_by(func.count(PA.id).desc(), PA.admin_reviewed_by)
            ).all()

        return [
            {
                "reviewer": reviewer,
                "total_reviews": total,
                "approved": int(approved_count or 0),
                "rejected": int(rejected_count or 0),
            }
            for reviewer, total, approved_count, rejected_count in rows
        ]
