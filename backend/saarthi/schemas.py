from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel, to_snake

from saarthi.utils.helpers import coerce_int, validate_phone, validate_pincode


class CamelModel(BaseModel):
    """Wire format is camelCase; snake_case names are accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# -----------------------
# Auth
# -----------------------
class RegisterIn(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email")
        return v


class LoginIn(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


# -----------------------
# Properties
# -----------------------
_LOCATION_KEYS = ("address", "city", "state", "pincode", "locality")
_OWNER_KEYS = {"name": "ownerName", "phone": "ownerPhone", "email": "ownerEmail"}
_INT_FIELDS = ("bedrooms", "bathrooms", "balconies", "floor", "total_floors", "year_built", "parking_spaces")


def _flatten_nested(data: dict[str, Any]) -> dict[str, Any]:
    """
    Listing forms send location/owner either flat or as nested objects.
    Nested values fill the flat fields; whatever is left stays nested and ends up in `extra`.
    """
    data = dict(data)
    loc = data.get("location")
    if isinstance(loc, dict):
        loc = dict(loc)
        for key in _LOCATION_KEYS:
            if key in loc and not data.get(key):
                data[key] = loc.pop(key)
        data["location"] = loc or None
    elif isinstance(loc, str):
        # A bare string location is treated as the address line.
        if not data.get("address"):
            data["address"] = loc
        data["location"] = None

    owner = data.get("owner")
    if isinstance(owner, dict):
        owner = dict(owner)
        for key, flat in _OWNER_KEYS.items():
            snake = to_snake(flat)
            if key in owner and not (data.get(flat) or data.get(snake)):
                data[flat] = owner.pop(key)
        data["owner"] = owner or None
    elif owner is not None:
        # Owner ids sent by clients are ignored; the principal owns what it creates.
        data["owner"] = None

    if "furnished" in data and not (data.get("furnishing")):
        data["furnishing"] = data.pop("furnished")
    return data


class PropertyFieldsIn(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True, extra="allow"
    )

    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    property_type: str | None = Field(default=None, max_length=60)
    listing_type: str | None = Field(default=None, max_length=40)

    address: str | None = Field(default=None, max_length=512)
    city: str | None = Field(default=None, max_length=120)
    state: str | None = Field(default=None, max_length=120)
    pincode: str | None = None
    locality: str | None = Field(default=None, max_length=255)
    location: dict[str, Any] | None = None

    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    balconies: int | None = Field(default=None, ge=0)
    area: float | None = Field(default=None, ge=0)
    area_unit: str | None = Field(default=None, max_length=20)
    furnishing: str | None = Field(default=None, max_length=40)
    facing: str | None = Field(default=None, max_length=40)
    floor: int | None = None
    total_floors: int | None = Field(default=None, ge=0)

    price: float | None = Field(default=None, ge=0)
    price_per_sqft: float | None = Field(default=None, ge=0)
    maintenance_charges: float | None = Field(default=None, ge=0)
    price_negotiable: bool | None = None

    amenities: list[str] | None = None
    images: list[str] | None = None

    year_built: int | None = None
    possession: str | None = Field(default=None, max_length=60)
    parking_spaces: int | None = Field(default=None, ge=0)

    owner_name: str | None = Field(default=None, max_length=255)
    owner_phone: str | None = None
    owner_email: str | None = Field(default=None, max_length=255)
    owner: dict[str, Any] | None = None
    agent_info: dict[str, Any] | None = None

    status: str | None = Field(default=None, max_length=20)

    @model_validator(mode="before")
    @classmethod
    def _nested(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return _flatten_nested(data)
        return data

    @field_validator(*_INT_FIELDS, mode="before")
    @classmethod
    def _ints(cls, v: Any) -> int | None:
        return coerce_int(v)

    @field_validator("area", mode="before")
    @classmethod
    def _area(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("title")
    @classmethod
    def _title(cls, v: str | None) -> str:
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("Price is required")
        return v

    @field_validator("amenities", "images", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        return [str(x).strip() for x in v if str(x).strip()]

    @field_validator("pincode", mode="before")
    @classmethod
    def _pincode(cls, v: Any) -> str | None:
        v = str(v).strip() if v is not None else None
        if v and not validate_pincode(v):
            raise ValueError("Invalid pincode")
        return v

    @field_validator("owner_phone", mode="before")
    @classmethod
    def _owner_phone(cls, v: Any) -> str | None:
        v = str(v).strip() if v is not None else None
        if v and not validate_phone(v):
            raise ValueError("Invalid phone number")
        return v

    def extension_fields(self) -> dict[str, Any]:
        """Keys without a typed column, plus leftover nested location/owner keys."""
        out: dict[str, Any] = dict(self.model_extra or {})
        # "furnished" is folded into furnishing; never keep both.
        out.pop("furnished", None)
        if self.location:
            out["location"] = self.location
        if self.owner:
            out["owner"] = self.owner
        return out


class PropertyCreateIn(PropertyFieldsIn):
    title: str = Field(max_length=255)
    price: float = Field(ge=0)


class PropertyUpdateIn(PropertyFieldsIn):
    """
    Partial update for owner/admin editing an existing property.
    Only provided fields are updated.
    """


class FeatureIn(CamelModel):
    featured: bool = True


# -----------------------
# Favorites
# -----------------------
class FavoriteIn(CamelModel):
    property_id: int | str
    notes: str | None = Field(default=None, max_length=500)


# -----------------------
# Contact
# -----------------------
class ContactIn(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True, extra="allow"
    )

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    phone: str = Field(default="", max_length=32)
    subject: str = Field(default="", max_length=255)
    property_interest: str = Field(default="", max_length=255)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email")
        return v
