import re
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from .errors import InvalidRange
from .models import CATEGORIES
from .services.booking import to_day


def iso_day(d: date) -> str:
    """Fixed-format date-time string for a calendar day."""
    return f"{d.isoformat()}T00:00:00.000Z"


def iso_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


# ==== Users ====

class RegisterIn(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("password must contain at least one uppercase letter")
        if not re.search(r"[0-9]", v):
            raise ValueError("password must contain at least one digit")
        return v


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    favorite_ids: List[int] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at")
    def _ser_ts(self, v: datetime) -> str:
        return iso_timestamp(v)


class OwnerOut(BaseModel):
    id: int
    name: Optional[str] = None
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ==== Listings ====

class ListingImageOut(BaseModel):
    url: str

    model_config = ConfigDict(from_attributes=True)


class ListingCreateIn(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=1000)
    category: str
    location_value: str = Field(min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    guest_count: int = Field(gt=0)
    room_count: int = Field(gt=0)
    bathroom_count: int = Field(gt=0)
    price: int = Field(gt=0)
    contact_phone: str = Field(pattern=r"^\d{9,15}$")
    payment_method: str = Field(min_length=1, max_length=50)
    image_urls: List[str] = Field(min_length=1)

    @field_validator("category")
    @classmethod
    def known_category(cls, v: str) -> str:
        if v not in CATEGORIES:
            raise ValueError("unknown category")
        return v


class ListingOut(BaseModel):
    id: int
    owner_id: Optional[int] = None
    title: str
    description: str
    category: str
    location_value: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    guest_count: int
    room_count: int
    bathroom_count: int
    price: int
    contact_phone: Optional[str] = None
    payment_method: Optional[str] = None
    favorites_count: int
    view_counter: int
    created_at: datetime
    images: List[ListingImageOut] = []

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def _ser_created(self, v: datetime) -> str:
        return iso_timestamp(v)


class ListingDetailOut(ListingOut):
    owner: Optional[OwnerOut] = None


class ListingPage(BaseModel):
    listings: List[ListingOut]
    total: int


# ==== Reservations ====

class ReservationCreateIn(BaseModel):
    listing_id: int
    start_date: date
    end_date: date

    # Range ordering is left to the booking engine, which answers InvalidRange.
    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _day(cls, v):
        try:
            return to_day(v)
        except InvalidRange as exc:
            raise ValueError(exc.message) from None


class ReservationOut(BaseModel):
    id: int
    listing_id: int
    user_id: int
    start_date: date
    end_date: date
    total_price: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_date", "end_date")
    def _ser_day(self, v: date) -> str:
        return iso_day(v)

    @field_serializer("created_at")
    def _ser_created(self, v: datetime) -> str:
        return iso_timestamp(v)


class ReservationWithListingOut(ReservationOut):
    listing: ListingOut


class ReservationPage(BaseModel):
    reservations: List[ReservationWithListingOut]
    total: int


class DateRangeOut(BaseModel):
    start_date: date
    end_date: date

    @field_serializer("start_date", "end_date")
    def _ser_day(self, v: date) -> str:
        return iso_day(v)


class AvailabilityOut(BaseModel):
    available: bool
    blocking_ranges: List[DateRangeOut]


class BlockedDatesOut(BaseModel):
    listing_id: int
    dates: List[date]

    @field_serializer("dates")
    def _ser_days(self, v: List[date]) -> List[str]:
        return [iso_day(d) for d in v]
