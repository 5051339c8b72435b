from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models import User
from ..schemas import (
    AvailabilityOut,
    BlockedDatesOut,
    DateRangeOut,
    ListingCreateIn,
    ListingDetailOut,
    ListingOut,
    ListingPage,
)
from ..security import current_user
from ..services.booking import BookingEngine
from ..services.listings import ListingQuery, create_listing, delete_listing, get_listing, get_listings
from .api_reservations import get_booking_engine

router = APIRouter(prefix="/api/listings", tags=["listings"])


@router.get("", response_model=ListingPage)
def api_listings(
    db: Session = Depends(get_db),
    user_id: Optional[int] = None,
    category: Optional[str] = None,
    location_value: Optional[str] = None,
    guest_count: Optional[int] = Query(None, ge=0),
    room_count: Optional[int] = Query(None, ge=0),
    bathroom_count: Optional[int] = Query(None, ge=0),
    views_count: Optional[int] = Query(None, ge=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
):
    params = ListingQuery(
        user_id=user_id,
        category=category,
        location_value=location_value,
        guest_count=guest_count,
        room_count=room_count,
        bathroom_count=bathroom_count,
        views_count=views_count,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    listings, total = get_listings(db, params)
    return {"listings": listings, "total": total}


@router.post("", response_model=ListingOut, status_code=201)
def api_create_listing(payload: ListingCreateIn, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return create_listing(db, user, payload)


@router.get("/{listing_id}", response_model=ListingDetailOut)
def api_listing(listing_id: int, db: Session = Depends(get_db)):
    listing = get_listing(db, listing_id)
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


@router.delete("/{listing_id}", status_code=204)
def api_delete_listing(listing_id: int, user: User = Depends(current_user), db: Session = Depends(get_db)):
    delete_listing(db, listing_id, user.id)
    return Response(status_code=204)


@router.get("/{listing_id}/availability", response_model=AvailabilityOut)
def api_availability(listing_id: int, start_date: str, end_date: str, engine: BookingEngine = Depends(get_booking_engine)):
    result = engine.check_availability(listing_id, start_date, end_date)
    return AvailabilityOut(
        available=result.available,
        blocking_ranges=[DateRangeOut(start_date=s, end_date=e) for s, e in result.blocking_ranges],
    )


@router.get("/{listing_id}/blocked-dates", response_model=BlockedDatesOut)
def api_blocked_dates(listing_id: int, engine: BookingEngine = Depends(get_booking_engine)):
    return BlockedDatesOut(listing_id=listing_id, dates=engine.blocked_dates(listing_id))
