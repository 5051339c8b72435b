from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Integer, String, Text, Float, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db import Base

if TYPE_CHECKING:
    from .user import User
    from .reservation import Reservation
    from .favorite import Favorite

# Category labels offered by the rent form, in display order.
CATEGORIES = (
    "طيرمان",
    "دشمة",
    "شاليهات",
    "قاعة اعراس ومناسبات",
    "عصري",
    "ريف",
    "مسابح",
    "جبال",
    "ساحل",
    "فنادق",
    "مخيمات",
    "بيوت للأيجار",
    "بيوت للبيع",
    "هناجر",
)

class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_listings_price_positive"),
        CheckConstraint("favorites_count >= 0", name="ck_listings_favorites_count_non_negative"),
        CheckConstraint("view_counter >= 0", name="ck_listings_view_counter_non_negative"),
        CheckConstraint(
            "room_count >= 0 AND bathroom_count >= 0 AND guest_count >= 0",
            name="ck_listings_capacity_non_negative",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    room_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bathroom_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    location_value: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    # Nightly price, whole currency units
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(20))
    payment_method: Mapped[str | None] = mapped_column(String(50))
    favorites_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    owner: Mapped[Optional[User]] = relationship(back_populates="listings")
    images: Mapped[list[ListingImage]] = relationship(
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="ListingImage.id",
    )
    reservations: Mapped[list[Reservation]] = relationship(back_populates="listing", cascade="all, delete-orphan")
    favorites: Mapped[list[Favorite]] = relationship(back_populates="listing", cascade="all, delete-orphan")


class ListingImage(Base):
    __tablename__ = "listing_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    listing_id: Mapped[int] = mapped_column(ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(500), nullable=False)

    listing: Mapped[Listing] = relationship(back_populates="images")
