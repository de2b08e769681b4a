# coursecart/repos/course_repo.py
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from coursecart.data.models.course import CourseModel


class CourseRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_course(self, course_id: int) -> CourseModel | None:
        return self.db.get(CourseModel, course_id)

    def get_courses(self, course_ids: Iterable[int]) -> Dict[int, CourseModel]:
        course_ids = list(course_ids)
        if not course_ids:
            return {}
        rows = self.db.execute(
            select(CourseModel).where(CourseModel.id.in_(course_ids))
        ).scalars()
        return {c.id: c for c in rows}
