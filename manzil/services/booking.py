"""Availability checks, reservation submission and cancellation.

Overlap between an existing reservation and a candidate range is tested with
a closed interval by default::

    existing.start_date <= candidate.end_date AND existing.end_date >= candidate.start_date

so a checkout day that equals another stay's checkin day counts as a
conflict. With ``allow_same_day_turnover`` the comparison becomes strict and
back-to-back stays may share that day.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import and_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..errors import BookingError, Conflict, Forbidden, InvalidRange, NotFound, StoreError
from ..models import Listing, Reservation

logger = logging.getLogger(__name__)


def to_day(value: date | datetime | str) -> date:
    """Reduce an ISO-8601 date/date-time string, datetime or date to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            raise InvalidRange(f"Invalid date: {value!r}") from None
    raise InvalidRange(f"Invalid date: {value!r}")


def nights_between(start: date, end: date) -> int:
    return (end - start).days


def blocked_days_between(start: date, end: date) -> list[date]:
    """Each calendar day from start to end, both ends included."""
    return [start + timedelta(days=i) for i in range(nights_between(start, end) + 1)]


def validate_range(start, end) -> tuple[date, date]:
    s = to_day(start)
    e = to_day(end)
    if nights_between(s, e) <= 0:
        raise InvalidRange()
    return s, e


def overlap_clause(start: date, end: date, allow_same_day_turnover: bool = False):
    """SQL predicate matching reservations that collide with [start, end]."""
    if allow_same_day_turnover:
        return and_(Reservation.start_date < end, Reservation.end_date > start)
    return and_(Reservation.start_date <= end, Reservation.end_date >= start)


@dataclass
class Availability:
    available: bool
    blocking_ranges: list[tuple[date, date]] = field(default_factory=list)


class BookingEngine:
    """Booking operations bound to one request-scoped session."""

    def __init__(self, db: Session, allow_same_day_turnover: bool | None = None):
        self.db = db
        if allow_same_day_turnover is None:
            allow_same_day_turnover = settings.ALLOW_SAME_DAY_TURNOVER
        self.allow_same_day_turnover = allow_same_day_turnover

    def _blocking(self, listing_id: int, start: date, end: date) -> list[Reservation]:
        return (
            self.db.query(Reservation)
            .filter(
                Reservation.listing_id == listing_id,
                overlap_clause(start, end, self.allow_same_day_turnover),
            )
            .order_by(Reservation.start_date.asc())
            .all()
        )

    def check_availability(self, listing_id: int, start_date, end_date) -> Availability:
        s, e = validate_range(start_date, end_date)
        if self.db.get(Listing, listing_id) is None:
            raise NotFound("Listing not found")
        blocking = self._blocking(listing_id, s, e)
        return Availability(
            available=not blocking,
            blocking_ranges=[(r.start_date, r.end_date) for r in blocking],
        )

    def blocked_dates(self, listing_id: int) -> list[date]:
        """Every day covered by any reservation on the listing, both ends included."""
        if self.db.get(Listing, listing_id) is None:
            raise NotFound("Listing not found")
        rows = (
            self.db.query(Reservation.start_date, Reservation.end_date)
            .filter(Reservation.listing_id == listing_id)
            .all()
        )
        days: set[date] = set()
        for start, end in rows:
            days.update(blocked_days_between(start, end))
        return sorted(days)

    def create_reservation(self, listing_id: int, user_id: int, start_date, end_date) -> Reservation:
        s, e = validate_range(start_date, end_date)
        try:
            # A no-op UPDATE takes the write lock before the conflict check:
            # a row lock on PostgreSQL, the database RESERVED lock on SQLite.
            # Concurrent submissions for the listing wait here.
            locked = self.db.execute(
                update(Listing)
                .where(Listing.id == listing_id)
                .values(price=Listing.price)
            )
            if not locked.rowcount:
                raise NotFound("Listing not found")
            listing = self.db.get(Listing, listing_id)
            if self._blocking(listing.id, s, e):
                raise Conflict()
            reservation = Reservation(
                listing_id=listing.id,
                user_id=user_id,
                start_date=s,
                end_date=e,
                total_price=nights_between(s, e) * listing.price,
            )
            self.db.add(reservation)
            self.db.commit()
            self.db.refresh(reservation)
        except BookingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to store reservation for listing %s", listing_id)
            raise StoreError() from exc
        logger.info(
            "Reservation %s created: listing=%s user=%s %s..%s total=%s",
            reservation.id, listing_id, user_id, s, e, reservation.total_price,
        )
        return reservation

    def cancel_reservation(self, reservation_id: int, acting_user_id: int) -> None:
        """Delete a reservation. Allowed for the booking user and the listing owner."""
        reservation = self.db.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFound("Reservation not found")
        owner_id = reservation.listing.owner_id if reservation.listing else None
        if acting_user_id not in (reservation.user_id, owner_id):
            raise Forbidden("Only the guest or the host can cancel this reservation")
        try:
            self.db.delete(reservation)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to cancel reservation %s", reservation_id)
            raise StoreError() from exc
        logger.info("Reservation %s cancelled by user %s", reservation_id, acting_user_id)


def get_reservations(
    db: Session,
    listing_id: int | None = None,
    user_id: int | None = None,
    author_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Reservation], int]:
    """
    Reservations filtered by listing, by booking user (trips) or by listing
    owner (a host's incoming reservations), newest first.
    """
    q = db.query(Reservation)
    if listing_id:
        q = q.filter(Reservation.listing_id == listing_id)
    if user_id:
        q = q.filter(Reservation.user_id == user_id)
    if author_id:
        q = q.filter(Reservation.listing.has(Listing.owner_id == author_id))
    total = q.count()
    page = max(page, 1)
    limit = min(max(limit, 1), settings.MAX_PAGE_SIZE)
    reservations = (
        q.options(selectinload(Reservation.listing).selectinload(Listing.images))
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return reservations, total
