from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Present only for accounts that signed in with Google at least once.
    google_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # Null for Google-only accounts.
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar: Mapped[str] = mapped_column(String(1024), default="")
    provider: Mapped[str] = mapped_column(String(20), default="manual")  # google | manual
    role: Mapped[str] = mapped_column(String(20), default="user")  # user | agent | admin
    phone: Mapped[str] = mapped_column(String(32), default="")

    # Preferences
    notifications: Mapped[bool] = mapped_column(Boolean, default=True)
    newsletter: Mapped[bool] = mapped_column(Boolean, default=True)

    last_login: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    properties = relationship("Property", back_populates="owner")
    favorites = relationship("Favorite", back_populates="user", cascade="all, delete-orphan")


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Public-facing listing reference (SAR...).
    reference: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    # Basic info
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    property_type: Mapped[str] = mapped_column(String(60), default="", index=True)
    listing_type: Mapped[str] = mapped_column(String(40), default="")

    # Location
    address: Mapped[str] = mapped_column(String(512), default="")
    city: Mapped[str] = mapped_column(String(120), default="", index=True)
    state: Mapped[str] = mapped_column(String(120), default="")
    pincode: Mapped[str] = mapped_column(String(12), default="")
    locality: Mapped[str] = mapped_column(String(255), default="")

    # Layout
    bedrooms: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    bathrooms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    balconies: Mapped[int | None] = mapped_column(Integer, nullable=True)
    area: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)
    area_unit: Mapped[str] = mapped_column(String(20), default="sqft")
    furnishing: Mapped[str] = mapped_column(String(40), default="")
    facing: Mapped[str] = mapped_column(String(40), default="")
    floor: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_floors: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Pricing (rupees)
    price: Mapped[float] = mapped_column(Float, index=True)
    price_per_sqft: Mapped[float | None] = mapped_column(Float, nullable=True)
    maintenance_charges: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_negotiable: Mapped[bool] = mapped_column(Boolean, default=False)

    # Additional
    year_built: Mapped[int | None] = mapped_column(Integer, nullable=True)
    possession: Mapped[str] = mapped_column(String(60), default="")
    parking_spaces: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Listing contact as typed on the form (may differ from the account owner).
    owner_name: Mapped[str] = mapped_column(String(255), default="")
    owner_phone: Mapped[str] = mapped_column(String(32), default="")
    owner_email: Mapped[str] = mapped_column(String(255), default="")

    agent_name: Mapped[str] = mapped_column(String(255), default="")
    agent_phone: Mapped[str] = mapped_column(String(32), default="")
    agent_email: Mapped[str] = mapped_column(String(255), default="")
    agent_image: Mapped[str] = mapped_column(String(1024), default="")

    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    views: Mapped[int] = mapped_column(Integer, default=0)

    # Keys the listing form sent that have no typed column.
    extra: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    owner = relationship("User", back_populates="properties")
    amenity_rows = relationship(
        "PropertyAmenity", back_populates="property", cascade="all, delete-orphan", order_by="PropertyAmenity.id"
    )
    image_rows = relationship(
        "PropertyImage", back_populates="property", cascade="all, delete-orphan", order_by="PropertyImage.sort_order"
    )

    @property
    def amenities(self) -> list[str]:
        return [a.name for a in (self.amenity_rows or [])]

    @property
    def images(self) -> list[str]:
        return [i.url for i in (self.image_rows or [])]


class PropertyAmenity(Base):
    __tablename__ = "property_amenities"
    __table_args__ = (UniqueConstraint("property_id", "name", name="uq_property_amenity"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), index=True)

    property = relationship("Property", back_populates="amenity_rows")


class PropertyImage(Base):
    __tablename__ = "property_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), index=True)
    url: Mapped[str] = mapped_column(String(1024))
    # Cloudinary public_id for cleanup (empty for externally hosted URLs).
    cloudinary_public_id: Mapped[str] = mapped_column(String(255), default="")
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    property = relationship("Property", back_populates="image_rows")


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_favorite_user_property"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    property_id: Mapped[int] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), index=True)
    notes: Mapped[str] = mapped_column(String(500), default="")
    added_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)

    user = relationship("User", back_populates="favorites")
    property = relationship("Property")


class Contact(Base):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(32), default="")
    subject: Mapped[str] = mapped_column(String(255), default="")
    message: Mapped[str] = mapped_column(Text)
    property_interest: Mapped[str] = mapped_column(String(255), default="")
    extra: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class UserInteraction(Base):
    __tablename__ = "user_interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    session_id: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[str] = mapped_column(String(60), index=True)  # property_view | favorite_add | ...
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
