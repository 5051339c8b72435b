import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import settings
from .db import Base, engine
from .errors import BookingError
from .limiter import limiter
from .routers import api_auth, api_listings, api_reservations, api_favorites, pages_views

# --- Logging configuration ---
_level = logging.DEBUG if getattr(settings, "DEBUG", False) else logging.INFO
logging.basicConfig(
    level=_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
# Align uvicorn loggers with our level (useful under Docker Compose)
for _name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(_name).setLevel(_level)
logger = logging.getLogger("manzil.startup")
logger.info("Starting %s (DEBUG=%s)", settings.APP_NAME, getattr(settings, "DEBUG", False))

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description=(
        f"{settings.APP_NAME}: vacation rental listings and bookings.\n\n"
        "Session-cookie based auth. JSON endpoints live under /api."
    ),
)


@app.on_event("startup")
def startup_event():
    """Creates missing tables when AUTO_CREATE_TABLES is on; production runs alembic instead."""
    logger.info("Running startup tasks...")
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured.")
    logger.info("Startup tasks complete.")


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# Add the limiter to the app state
app.state.limiter = limiter
# Add the exception handler for rate limit exceeded errors
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(pages_views.router)
app.include_router(api_auth.router)
app.include_router(api_listings.router)
app.include_router(api_reservations.router)
app.include_router(api_favorites.router)

@app.get("/healthz")
@limiter.exempt
def healthz():
    return {"status": "ok"}
