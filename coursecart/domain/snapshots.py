# coursecart/domain/snapshots.py
"""
Snapshot danych kursu - kopia wartosci z momentu dodania do koszyka.

Nigdy nie odswiezamy snapshotu z zywego rekordu kursu; zmiana ceny
w katalogu nie moze zmienic historycznego zamowienia.
"""
import json
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Iterable, List

from coursecart.domain.errors import IntegrityViolation


@dataclass(frozen=True)
class CourseSnapshot:
    course_id: int
    title: str
    price: Decimal
    thumbnail_url: str | None = None
    instructor_name: str | None = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise IntegrityViolation("Snapshot title must not be empty", course_id=self.course_id)
        if Decimal(self.price) < 0:
            raise IntegrityViolation("Snapshot price must be >= 0", course_id=self.course_id)

    @classmethod
    def from_course(cls, course: Any) -> "CourseSnapshot":
        return cls(
            course_id=course.id,
            title=course.title,
            price=Decimal(course.price),
            thumbnail_url=course.thumbnail_url,
            instructor_name=course.instructor_name,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["price"] = str(self.price)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CourseSnapshot":
        return cls(
            course_id=int(data["course_id"]),
            title=data["title"],
            price=Decimal(data["price"]),
            thumbnail_url=data.get("thumbnail_url"),
            instructor_name=data.get("instructor_name"),
        )


def dump_snapshot(items: Iterable[CourseSnapshot]) -> str:
    # sort_keys zeby ten sam koszyk dawal identyczny JSON
    return json.dumps([i.to_dict() for i in items], sort_keys=True, ensure_ascii=False)


def load_snapshot(raw: str) -> List[CourseSnapshot]:
    return [CourseSnapshot.from_dict(d) for d in json.loads(raw)]


def snapshot_total(items: Iterable[CourseSnapshot]) -> Decimal:
    return sum((i.price for i in items), Decimal("0.00"))
