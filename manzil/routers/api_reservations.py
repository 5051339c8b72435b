from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import Forbidden
from ..models import User
from ..schemas import ReservationCreateIn, ReservationOut, ReservationPage
from ..security import current_user
from ..services.booking import BookingEngine, get_reservations

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


def get_booking_engine(db: Session = Depends(get_db)) -> BookingEngine:
    return BookingEngine(db)


@router.get("", response_model=ReservationPage)
def api_reservations(
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    user_id: Optional[int] = None,
    author_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    """Trips (`user_id`) or incoming reservations on owned listings (`author_id`)."""
    if not user_id and not author_id:
        raise HTTPException(status_code=400, detail="author_id or user_id is required")
    if (user_id and user_id != user.id) or (author_id and author_id != user.id):
        raise Forbidden("You can only view your own trips and reservations")
    reservations, total = get_reservations(db, user_id=user_id, author_id=author_id, page=page, limit=limit)
    return {"reservations": reservations, "total": total}


@router.post("", response_model=ReservationOut, status_code=201)
def api_create_reservation(payload: ReservationCreateIn, user: User = Depends(current_user), engine: BookingEngine = Depends(get_booking_engine)):
    return engine.create_reservation(payload.listing_id, user.id, payload.start_date, payload.end_date)


@router.delete("/{reservation_id}", status_code=204)
def api_cancel_reservation(reservation_id: int, user: User = Depends(current_user), engine: BookingEngine = Depends(get_booking_engine)):
    engine.cancel_reservation(reservation_id, user.id)
    return Response(status_code=204)
