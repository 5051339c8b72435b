from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import InvalidRange
from ..models import User
from ..security import optional_user
from ..services.booking import BookingEngine
from ..services.listings import ListingQuery, get_listing, get_listings
from ..services.views import increment_view
from ..templating import templates

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
def home(
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(optional_user),
    category: Optional[str] = None,
    location_value: Optional[str] = None,
    guest_count: Optional[int] = Query(None, ge=0),
    # Plain strings: the search form submits empty date fields
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = Query(1, ge=1),
):
    params = ListingQuery(
        category=category or None,
        location_value=location_value or None,
        guest_count=guest_count,
        start_date=start_date or None,
        end_date=end_date or None,
        page=page,
    )
    error = None
    try:
        listings, total = get_listings(db, params)
    except InvalidRange as exc:
        listings, total, error = [], 0, exc.message
    pages = max((total + params.limit - 1) // params.limit, 1)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "user": user,
            "listings": listings,
            "total": total,
            "page": page,
            "pages": pages,
            "category": category,
            "error": error,
        },
    )


@router.get("/listings/{listing_id}", response_class=HTMLResponse)
def listing_detail(
    request: Request,
    listing_id: int,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(optional_user),
):
    listing = get_listing(db, listing_id)
    if not listing:
        return HTMLResponse("<h2>Listing not found</h2>", status_code=404)
    # Best-effort; a failed increment still renders the page
    increment_view(db, listing_id)
    engine = BookingEngine(db)
    blocked = engine.blocked_dates(listing_id)
    today = date.today()
    return templates.TemplateResponse(
        request,
        "listing.html",
        {
            "user": user,
            "listing": listing,
            "blocked_dates": [d.isoformat() for d in blocked],
            "is_favorite": bool(user and listing.id in user.favorite_ids),
            "today_str": today.isoformat(),
        },
    )
