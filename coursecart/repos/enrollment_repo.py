# coursecart/repos/enrollment_repo.py
from typing import Iterable, List, Set

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coursecart.data.models.enrollment import CourseEnrollmentModel
from coursecart.domain.statuses import EnrollmentStatus


class EnrollmentRepo:
    def __init__(self, db: Session):
        self.db = db

    def has_active_enrollment(self, user_id: int, course_id: int) -> bool:
        return self.get_active_enrollment(user_id, course_id) is not None

    def get_active_enrollment(self, user_id: int, course_id: int) -> CourseEnrollmentModel | None:
        return self.db.execute(
            select(CourseEnrollmentModel).where(
                CourseEnrollmentModel.user_id == user_id,
                CourseEnrollmentModel.course_id == course_id,
                CourseEnrollmentModel.enrollment_status == EnrollmentStatus.ACTIVE.value,
            )
        ).scalar_one_or_none()

    def active_course_ids(self, user_id: int, course_ids: Iterable[int]) -> Set[int]:
        course_ids = list(course_ids)
        if not course_ids:
            return set()
        rows = self.db.execute(
            select(CourseEnrollmentModel.course_id).where(
                CourseEnrollmentModel.user_id == user_id,
                CourseEnrollmentModel.course_id.in_(course_ids),
                CourseEnrollmentModel.enrollment_status == EnrollmentStatus.ACTIVE.value,
            )
        ).scalars()
        return set(rows)

    def insert_if_absent(self, enrollment: CourseEnrollmentModel) -> bool:
        """
        Insert w savepoincie. Jesli partial unique index odrzuci wiersz
        (rownolegly zapis na ten sam kurs) zwraca False, reszta transakcji zostaje.
        """
        try:
            with self.db.begin_nested():
                self.db.add(enrollment)
                self.db.flush()
        except IntegrityError:
            return False
        return True

    def list_for_order(self, order_id: int) -> List[CourseEnrollmentModel]:
        return list(
            self.db.execute(
                select(CourseEnrollmentModel)
                .where(CourseEnrollmentModel.order_id == order_id)
                .order_by(CourseEnrollmentModel.id)
            ).scalars()
        )

    def mark_refunded(self, payment_attempt_id: int, enrollment_status: int, payment_status: int) -> int:
        result = self.db.execute(
            update(CourseEnrollmentModel)
            .where(CourseEnrollmentModel.payment_attempt_id == payment_attempt_id)
            .values(enrollment_status=enrollment_status, payment_status=payment_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
