import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Listing

logger = logging.getLogger(__name__)


def increment_view(db: Session, listing_id: int) -> bool:
    """
    Add one to the listing's view counter.
    Every call counts, repeat visits included. Returns False instead of
    raising when the listing is missing or the store fails, so a page render
    never breaks on it.
    """
    try:
        result = db.execute(
            update(Listing)
            .where(Listing.id == listing_id)
            .values(view_counter=Listing.view_counter + 1)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to increment view counter for listing %s", listing_id, exc_info=True)
        return False
    if not result.rowcount:
        logger.warning("increment_view: listing %s not found", listing_id)
        return False
    return True
