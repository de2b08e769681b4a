#coursecart/api/routers/carts.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursecart.api.deps import get_lock_service
from coursecart.data.database import get_db
from coursecart.domain.schemas import CartOut, CheckoutPreviewOut, CourseIn
from coursecart.services.cart_service import CartService
from coursecart.services.lock_service import LockService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session, lock_service: LockService):
    return CartService(db=db, lock_service=lock_service)


@router.get("/me", response_model=CartOut)
def get_cart(
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    return get_service(db, lock_service).get_cart(user_id)


@router.post("/me/items", response_model=CartOut)
def add_course(
    payload: CourseIn,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    """Dodanie kursu drugi raz nic nie zmienia."""
    return get_service(db, lock_service).add_course(user_id, payload.course_id)


@router.delete("/me/items/{course_id}", response_model=CartOut)
def remove_course(
    course_id: int,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    return get_service(db, lock_service).remove_course(user_id, course_id)


@router.post("/me/validate", response_model=CheckoutPreviewOut)
def validate_cart(
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    view = get_service(db, lock_service).validate_for_checkout(user_id)
    return {
        "cart_id": view.cart_id,
        "user_id": view.user_id,
        "cart_version": view.cart_version,
        "items": [i.to_dict() for i in view.items],
        "total": view.total,
        "warnings": [
            {"course_id": w.course_id, "snapshot_price": w.snapshot_price, "live_price": w.live_price}
            for w in view.warnings
        ],
    }
