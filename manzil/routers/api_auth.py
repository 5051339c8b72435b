import logging

from fastapi import APIRouter, Depends, Request, Response, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..limiter import limiter
from ..models import User
from ..schemas import RegisterIn, LoginIn, UserOut
from ..security import hash_password, verify_password, set_session, clear_session, current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=201)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def api_register(request: Request, payload: RegisterIn, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already in use")
    user = User(email=email, name=payload.name.strip(), hashed_password=hash_password(payload.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already in use")
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


@router.post("/auth/login", response_model=UserOut)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def api_login(request: Request, payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not user.hashed_password or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    set_session(response, user.id)
    return user


@router.post("/auth/logout")
def api_logout(response: Response):
    clear_session(response)
    return {"ok": True}


@router.get("/auth/me", response_model=UserOut)
def api_me(user: User = Depends(current_user)):
    return user
