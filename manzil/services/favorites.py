import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFound, StoreError
from ..models import Favorite, Listing, User

logger = logging.getLogger(__name__)


def _bump_favorites_count(db: Session, listing_id: int, delta: int) -> None:
    """
    Best-effort counter update, run after the membership change is committed.
    A failure here leaves the counter behind the favorite rows; it is logged
    and the toggle still succeeds.
    """
    stmt = update(Listing).where(Listing.id == listing_id)
    if delta < 0:
        # floor at zero even if the count has drifted
        stmt = stmt.where(Listing.favorites_count > 0)
    stmt = stmt.values(favorites_count=Listing.favorites_count + delta)
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not update favorites_count for listing %s (delta=%s)", listing_id, delta, exc_info=True)


def add_favorite(db: Session, user: User, listing_id: int) -> User:
    if db.get(Listing, listing_id) is None:
        raise NotFound("Listing not found")
    if listing_id in user.favorite_ids:
        return user
    try:
        db.add(Favorite(user_id=user.id, listing_id=listing_id))
        db.commit()
    except IntegrityError:
        # A concurrent request added it first
        db.rollback()
        db.refresh(user)
        return user
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to add listing %s to favorites of user %s", listing_id, user.id)
        raise StoreError() from exc
    _bump_favorites_count(db, listing_id, +1)
    db.refresh(user)
    return user


def remove_favorite(db: Session, user: User, listing_id: int) -> User:
    try:
        deleted = (
            db.query(Favorite)
            .filter(Favorite.user_id == user.id, Favorite.listing_id == listing_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to remove listing %s from favorites of user %s", listing_id, user.id)
        raise StoreError() from exc
    if deleted:
        _bump_favorites_count(db, listing_id, -1)
    db.refresh(user)
    return user


def favorite_listings(db: Session, user: User) -> list[Listing]:
    """The user's favorite listings in the order they were favorited."""
    return (
        db.query(Listing)
        .join(Favorite, Favorite.listing_id == Listing.id)
        .filter(Favorite.user_id == user.id)
        .order_by(Favorite.id.asc())
        .all()
    )
