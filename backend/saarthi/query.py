"""
Property search: query-string filters -> SQLAlchemy statement.

All recognised filters combine with AND; the three `search` alternatives combine with OR.
Only listings with status "active" are ever returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from saarthi.models import Property, PropertyAmenity
from saarthi.utils.helpers import CRORE, coerce_int, get_pagination


DEFAULT_LIMIT = 12

SORTABLE_COLUMNS = {
    "createdAt": Property.created_at,
    "updatedAt": Property.updated_at,
    "price": Property.price,
    "area": Property.area,
    "bedrooms": Property.bedrooms,
    "views": Property.views,
    "title": Property.title,
}


def split_csv_values(values: list[str] | str | None) -> list[str]:
    """
    Multi-select filters arrive repeated (?amenities=a&amenities=b), comma-separated
    (?amenities=a,b) or as a single value; all become one clean list.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    for raw in values:
        for part in (raw or "").split(","):
            part = part.strip()
            if part and part not in out:
                out.append(part)
    return out


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _contains(column: Any, term: str) -> ColumnElement[bool]:
    return column.ilike(_like(term), escape="\\")


@dataclass
class PropertyFilters:
    search: str = ""
    location: str = ""
    property_type: str = ""
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    furnishing: str = ""
    possession: str = ""
    min_area: int | None = None
    max_area: int | None = None
    amenities: list[str] = field(default_factory=list)
    sort: str = "createdAt"
    order: str = "desc"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_params(
        cls,
        *,
        search: str | None = None,
        location: str | None = None,
        property_type: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        bedrooms: Any = None,
        furnishing: str | None = None,
        possession: str | None = None,
        min_area: int | None = None,
        max_area: int | None = None,
        amenities: list[str] | str | None = None,
        sort: str | None = None,
        order: str | None = None,
        page: Any = 1,
        limit: Any = DEFAULT_LIMIT,
    ) -> "PropertyFilters":
        current_page, per_page, _ = get_pagination(page, limit)
        return cls(
            search=(search or "").strip(),
            location=(location or "").strip(),
            property_type=(property_type or "").strip(),
            min_price=min_price,
            max_price=max_price,
            bedrooms=coerce_int(bedrooms),
            furnishing=(furnishing or "").strip(),
            possession=(possession or "").strip(),
            min_area=min_area,
            max_area=max_area,
            amenities=split_csv_values(amenities),
            sort=(sort or "createdAt").strip(),
            order=(order or "desc").strip().lower(),
            page=current_page,
            limit=per_page,
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def active_filters(self) -> dict[str, Any]:
        """Non-empty filters, for logging and interaction tracking."""
        out: dict[str, Any] = {}
        for key in (
            "search", "location", "property_type", "min_price", "max_price", "bedrooms",
            "furnishing", "possession", "min_area", "max_area", "amenities",
        ):
            value = getattr(self, key)
            if value not in (None, "", []):
                out[key] = value
        return out


def build_conditions(filters: PropertyFilters) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Property.status == "active"]

    if filters.search:
        term = filters.search
        conditions.append(
            or_(
                _contains(Property.title, term),
                _contains(Property.description, term),
                # Location: any of the free-form location fields.
                _contains(Property.city, term),
                _contains(Property.locality, term),
                _contains(Property.address, term),
                _contains(Property.state, term),
            )
        )
    if filters.location:
        conditions.append(_contains(Property.city, filters.location))
    if filters.property_type:
        conditions.append(Property.property_type == filters.property_type)

    # Price filters are entered in crore.
    if filters.min_price is not None:
        conditions.append(Property.price >= float(filters.min_price) * CRORE)
    if filters.max_price is not None:
        conditions.append(Property.price <= float(filters.max_price) * CRORE)

    if filters.bedrooms is not None:
        conditions.append(Property.bedrooms >= int(filters.bedrooms))
    if filters.furnishing:
        conditions.append(Property.furnishing == filters.furnishing)
    if filters.possession:
        conditions.append(Property.possession == filters.possession)
    if filters.min_area is not None:
        conditions.append(Property.area >= float(filters.min_area))
    if filters.max_area is not None:
        conditions.append(Property.area <= float(filters.max_area))

    if filters.amenities:
        conditions.append(
            Property.id.in_(
                select(PropertyAmenity.property_id).where(PropertyAmenity.name.in_(filters.amenities))
            )
        )
    return conditions


def sort_clauses(filters: PropertyFilters) -> list[Any]:
    column = SORTABLE_COLUMNS.get(filters.sort, Property.created_at)
    if filters.order == "desc":
        # Id tiebreaker keeps pages stable when sort keys collide.
        return [column.desc(), Property.id.desc()]
    return [column.asc(), Property.id.asc()]


def build_property_query(filters: PropertyFilters) -> Select:
    """One page of matching listings, owners and child rows eagerly loaded."""
    return (
        select(Property)
        .options(
            selectinload(Property.owner),
            selectinload(Property.amenity_rows),
            selectinload(Property.image_rows),
        )
        .where(*build_conditions(filters))
        .order_by(*sort_clauses(filters))
        .offset(filters.skip)
        .limit(filters.limit)
    )


def build_count_query(filters: PropertyFilters) -> Select:
    return select(func.count()).select_from(Property).where(*build_conditions(filters))
