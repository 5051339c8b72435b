from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import ListingOut, UserOut
from ..security import current_user
from ..services.favorites import add_favorite, favorite_listings, remove_favorite
from ..services.views import increment_view

router = APIRouter(prefix="/api", tags=["favorites"])


@router.get("/favorites", response_model=List[ListingOut])
def api_favorites(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return favorite_listings(db, user)


@router.post("/favorites/{listing_id}", response_model=UserOut)
def api_add_favorite(listing_id: int, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return add_favorite(db, user, listing_id)


@router.delete("/favorites/{listing_id}", response_model=UserOut)
def api_remove_favorite(listing_id: int, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return remove_favorite(db, user, listing_id)


@router.post("/views/{listing_id}")
def api_view(listing_id: int, db: Session = Depends(get_db)):
    # Telemetry only; always 200 so the client never surfaces it.
    return {"ok": increment_view(db, listing_id)}
