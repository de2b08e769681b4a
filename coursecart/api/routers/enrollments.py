# coursecart/api/routers/enrollments.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursecart.data.database import get_db
from coursecart.domain.schemas import EnrollmentOut, FreeEnrollmentIn
from coursecart.services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("/free", response_model=EnrollmentOut, status_code=201)
def enroll_free(
    payload: FreeEnrollmentIn,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """Darmowy kurs - bez zamowienia i platnosci."""
    return EnrollmentService(db).enroll_free_course(user_id, payload.course_id)
