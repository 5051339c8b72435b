from pathlib import Path

from fastapi.templating import Jinja2Templates

from .config import settings
from .models import CATEGORIES

def price_filter(amount: int | None) -> str:
    """A Jinja2 filter rendering an amount with thousands separators and the currency label."""
    if amount is None:
        return "-"
    return f"{amount:,} {settings.CURRENCY_LABEL}"

# Create a single, shared Jinja2Templates instance
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Add the custom filter to the environment
templates.env.filters["price"] = price_filter
templates.env.globals["categories"] = CATEGORIES
templates.env.globals["app_name"] = settings.APP_NAME
