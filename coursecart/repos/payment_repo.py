# coursecart/repos/payment_repo.py
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.domain.statuses import PaymentStatus, TERMINAL_STATUSES, EXPIRABLE_STATUSES


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_attempt(self, attempt: PaymentAttemptModel) -> PaymentAttemptModel:
        self.db.add(attempt)
        self.db.flush()
        return attempt

    def get_attempt(self, attempt_id: int) -> PaymentAttemptModel | None:
        return self.db.get(PaymentAttemptModel, attempt_id)

    def reload(self, attempt: PaymentAttemptModel) -> PaymentAttemptModel:
        self.db.refresh(attempt)
        return attempt

    def list_for_order(self, order_id: int) -> List[PaymentAttemptModel]:
        return list(
            self.db.execute(
                select(PaymentAttemptModel)
                .where(PaymentAttemptModel.order_id == order_id)
                .order_by(PaymentAttemptModel.id)
            ).scalars()
        )

    def get_live_attempt(self, order_id: int) -> PaymentAttemptModel | None:
        return self.db.execute(
            select(PaymentAttemptModel)
            .where(
                PaymentAttemptModel.order_id == order_id,
                PaymentAttemptModel.status.not_in([s.value for s in TERMINAL_STATUSES]),
            )
            .order_by(PaymentAttemptModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_due_for_expiry(self, now: datetime, limit: int = 500) -> List[PaymentAttemptModel]:
        return list(
            self.db.execute(
                select(PaymentAttemptModel)
                .where(
                    PaymentAttemptModel.status.in_([s.value for s in EXPIRABLE_STATUSES]),
                    PaymentAttemptModel.expires_at < now,
                )
                .order_by(PaymentAttemptModel.expires_at)
                .limit(limit)
            ).scalars()
        )

    def compare_and_set_status(
        self,
        attempt_id: int,
        expected: Iterable[PaymentStatus],
        new_status: PaymentStatus,
        **values,
    ) -> int:
        """
        UPDATE ... SET status = :new WHERE id = :id AND status IN (:expected)
        Zwraca rowcount - 0 znaczy ze ktos inny juz zmienil status.
        """
        result = self.db.execute(
            update(PaymentAttemptModel)
            .where(
                PaymentAttemptModel.id == attempt_id,
                PaymentAttemptModel.status.in_([int(s) for s in expected]),
            )
            .values(status=int(new_status), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
