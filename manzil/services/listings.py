"""Listing search, creation and deletion.

All filtering happens in SQL; nothing here loads an unbounded set of rows.
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..errors import Forbidden, NotFound, StoreError
from ..models import Listing, ListingImage, User
from .booking import overlap_clause, validate_range

logger = logging.getLogger(__name__)


@dataclass
class ListingQuery:
    user_id: int | None = None
    category: str | None = None
    location_value: str | None = None
    guest_count: int | None = None
    room_count: int | None = None
    bathroom_count: int | None = None
    views_count: int | None = None
    start_date: date | str | None = None
    end_date: date | str | None = None
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE


def _page_bounds(page: int, limit: int) -> tuple[int, int]:
    page = max(page or 1, 1)
    limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)
    return (page - 1) * limit, limit


def get_listings(db: Session, params: ListingQuery) -> tuple[list[Listing], int]:
    q = db.query(Listing)
    if params.user_id:
        q = q.filter(Listing.owner_id == params.user_id)
    if params.category:
        q = q.filter(Listing.category == params.category)
    if params.location_value:
        q = q.filter(Listing.location_value == params.location_value)
    if params.guest_count:
        q = q.filter(Listing.guest_count >= params.guest_count)
    if params.room_count:
        q = q.filter(Listing.room_count >= params.room_count)
    if params.bathroom_count:
        q = q.filter(Listing.bathroom_count >= params.bathroom_count)
    if params.views_count:
        q = q.filter(Listing.view_counter >= params.views_count)
    if params.start_date and params.end_date:
        s, e = validate_range(params.start_date, params.end_date)
        q = q.filter(~Listing.reservations.any(overlap_clause(s, e, settings.ALLOW_SAME_DAY_TURNOVER)))

    total = q.count()

    # The unfiltered home page shows the most viewed listings first
    if params.category or params.location_value or params.user_id:
        order = (Listing.created_at.desc(), Listing.id.desc())
    else:
        order = (Listing.view_counter.desc(), Listing.id.desc())
    offset, limit = _page_bounds(params.page, params.limit)
    listings = (
        q.options(selectinload(Listing.images))
        .order_by(*order)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return listings, total


def get_listing(db: Session, listing_id: int) -> Listing | None:
    return (
        db.query(Listing)
        .options(selectinload(Listing.images), selectinload(Listing.owner))
        .filter(Listing.id == listing_id)
        .first()
    )


def create_listing(db: Session, owner: User, data) -> Listing:
    listing = Listing(
        owner_id=owner.id,
        title=data.title.strip(),
        description=data.description.strip(),
        category=data.category,
        room_count=data.room_count,
        bathroom_count=data.bathroom_count,
        guest_count=data.guest_count,
        location_value=data.location_value,
        latitude=data.latitude,
        longitude=data.longitude,
        price=data.price,
        contact_phone=data.contact_phone,
        payment_method=data.payment_method,
        images=[ListingImage(url=url) for url in data.image_urls],
    )
    try:
        db.add(listing)
        db.commit()
        db.refresh(listing)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create listing for user %s", owner.id)
        raise StoreError() from exc
    logger.info("Listing %s created by user %s", listing.id, owner.id)
    return listing


def delete_listing(db: Session, listing_id: int, acting_user_id: int) -> None:
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise NotFound("Listing not found")
    if listing.owner_id != acting_user_id:
        raise Forbidden("You do not have permission to delete this listing")
    try:
        db.delete(listing)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete listing %s", listing_id)
        raise StoreError() from exc
    logger.info("Listing %s deleted by user %s", listing_id, acting_user_id)
