from __future__ import annotations

import logging
import math
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, Request, UploadFile
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from saarthi.context import AppContext
from saarthi.deps import get_ctx, get_current_user, get_db, get_optional_user, parse_id, track_page_view
from saarthi.models import Favorite, Property, PropertyAmenity, PropertyImage, User
from saarthi.query import PropertyFilters, build_count_query, build_property_query
from saarthi.schemas import PropertyCreateIn, PropertyFieldsIn, PropertyUpdateIn
from saarthi.serializers import property_out
from saarthi.tracking import increment_views, track
from saarthi.utils.cloudinary_storage import NotAnImage, cloudinary_enabled, destroy as cloudinary_destroy, upload_image
from saarthi.utils.helpers import MAX_DB_INT, calculate_emi, format_price, generate_property_id, success_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])

FEATURED_LIMIT = 8

# Typed columns a listing form may set directly.
_COLUMN_FIELDS = (
    "title", "description", "property_type", "listing_type",
    "address", "city", "state", "pincode", "locality",
    "bedrooms", "bathrooms", "balconies", "area", "area_unit", "furnishing", "facing", "floor", "total_floors",
    "price", "price_per_sqft", "maintenance_charges", "price_negotiable",
    "year_built", "possession", "parking_spaces",
    "owner_name", "owner_phone", "owner_email",
    "status",
)
_NULLABLE_FIELDS = {
    "bedrooms", "bathrooms", "balconies", "area", "floor", "total_floors",
    "price_per_sqft", "maintenance_charges", "year_built", "parking_spaces",
}
_COLUMN_DEFAULTS: dict[str, Any] = {"area_unit": "sqft", "status": "active", "price_negotiable": False}
_AGENT_KEYS = {"name": "agent_name", "phone": "agent_phone", "email": "agent_email", "image": "agent_image"}


def _with_children(stmt):
    return stmt.options(
        selectinload(Property.owner),
        selectinload(Property.amenity_rows),
        selectinload(Property.image_rows),
    )


def _get_property(db: Session, pid: int) -> Property:
    p = db.execute(_with_children(select(Property)).where(Property.id == pid)).scalar_one_or_none()
    if not p:
        raise HTTPException(status_code=404, detail="Property not found")
    return p


def _load_owned(db: Session, raw_id: str, me: User, action: str) -> Property:
    p = _get_property(db, parse_id(raw_id))
    if me.role != "admin" and p.owner_id != me.id:
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this property")
    return p


def _new_reference(db: Session) -> str:
    # Collisions are astronomically unlikely; check anyway before hitting the unique index.
    for _ in range(5):
        ref = generate_property_id()
        if not db.execute(select(Property.id).where(Property.reference == ref)).first():
            return ref
    raise HTTPException(status_code=500, detail="Could not allocate a property reference")


def _set_amenities(p: Property, names: list[str]) -> None:
    wanted: list[str] = []
    for n in names:
        if n not in wanted:
            wanted.append(n)
    # Keep surviving rows so the (property_id, name) unique index never sees a re-insert.
    keep = [row for row in p.amenity_rows if row.name in wanted]
    have = {row.name for row in keep}
    p.amenity_rows = keep + [PropertyAmenity(name=n) for n in wanted if n not in have]


def _set_images(p: Property, urls: list[str]) -> list[str]:
    """Replace the image list; returns Cloudinary public ids of dropped uploads."""
    existing = {row.url: row for row in p.image_rows}
    rows: list[PropertyImage] = []
    for i, url in enumerate(dict.fromkeys(urls)):
        row = existing.pop(url, None) or PropertyImage(url=url)
        row.sort_order = i
        rows.append(row)
    p.image_rows = rows
    return [row.cloudinary_public_id for row in existing.values() if row.cloudinary_public_id]


def _apply_fields(p: Property, data: PropertyFieldsIn, *, partial: bool) -> list[str]:
    provided = data.model_fields_set
    for name in _COLUMN_FIELDS:
        if partial and name not in provided:
            continue
        value = getattr(data, name)
        if value is None and name not in _NULLABLE_FIELDS:
            value = _COLUMN_DEFAULTS.get(name, "")
        setattr(p, name, value)

    if not partial or "amenities" in provided:
        _set_amenities(p, data.amenities or [])
    dropped: list[str] = []
    if not partial or "images" in provided:
        dropped = _set_images(p, data.images or [])

    ext = data.extension_fields()
    if partial:
        if ext:
            p.extra = {**(p.extra or {}), **ext}
    else:
        p.extra = ext
    return dropped


def _apply_agent(p: Property, agent_info: dict[str, Any] | None, *, fallback: User | None = None) -> None:
    if agent_info:
        for key, column in _AGENT_KEYS.items():
            if key in agent_info:
                setattr(p, column, str(agent_info.get(key) or "").strip())
        return
    if fallback:
        p.agent_name = fallback.name or ""
        p.agent_phone = fallback.phone or ""
        p.agent_email = fallback.email or ""
        p.agent_image = fallback.avatar or ""


# -----------------------
# Browse
# -----------------------
@router.get("", dependencies=[Depends(track_page_view("properties"))])
def list_properties(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    me: Annotated[User | None, Depends(get_optional_user)],
    search: str | None = Query(default=None),
    location: str | None = Query(default=None),
    property_type: str | None = Query(default=None, alias="propertyType"),
    min_price: float | None = Query(default=None, alias="minPrice"),
    max_price: float | None = Query(default=None, alias="maxPrice"),
    bedrooms: str | None = Query(default=None),
    furnishing: str | None = Query(default=None),
    possession: str | None = Query(default=None),
    min_area: int | None = Query(default=None, alias="minArea", ge=0, le=MAX_DB_INT),
    max_area: int | None = Query(default=None, alias="maxArea", ge=0, le=MAX_DB_INT),
    amenities: list[str] | None = Query(default=None),
    sort: str | None = Query(default=None),
    order: str | None = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=12),
):
    try:
        filters = PropertyFilters.from_params(
            search=search,
            location=location,
            property_type=property_type,
            min_price=min_price,
            max_price=max_price,
            bedrooms=bedrooms,
            furnishing=furnishing,
            possession=possession,
            min_area=min_area,
            max_area=max_area,
            amenities=amenities,
            sort=sort,
            order=order,
            page=page,
            limit=limit,
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid bedrooms filter")

    rows = db.execute(build_property_query(filters)).scalars().all()
    total = int(db.execute(build_count_query(filters)).scalar_one() or 0)

    active = filters.active_filters()
    if active:
        track(request, background_tasks, me, "property_search", active)

    return success_response(
        count=len(rows),
        total=total,
        totalPages=math.ceil(total / filters.limit),
        currentPage=filters.page,
        data=[property_out(p) for p in rows],
    )


@router.get("/featured", dependencies=[Depends(track_page_view("featured"))])
def featured_properties(db: Annotated[Session, Depends(get_db)]):
    stmt = (
        _with_children(select(Property))
        .where(Property.status == "active", Property.is_featured.is_(True))
        .order_by(Property.created_at.desc(), Property.id.desc())
        .limit(FEATURED_LIMIT)
    )
    rows = db.execute(stmt).scalars().all()
    return success_response(count=len(rows), data=[property_out(p) for p in rows])


@router.get("/{property_id}")
def get_property(
    property_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: Annotated[AppContext, Depends(get_ctx)],
    db: Annotated[Session, Depends(get_db)],
    me: Annotated[User | None, Depends(get_optional_user)],
):
    pid = parse_id(property_id)
    p = _get_property(db, pid)

    background_tasks.add_task(increment_views, ctx.database, pid)
    track(request, background_tasks, me, "property_view", {"propertyId": pid, "title": p.title})
    return success_response(data=property_out(p, include_owner_phone=True))


@router.get("/{property_id}/emi")
def property_emi(
    property_id: str,
    db: Annotated[Session, Depends(get_db)],
    rate: float = Query(default=8.5, ge=0, le=100),
    tenure: int = Query(default=20, ge=1, le=40),
    down_payment: float = Query(default=0, ge=0, alias="downPayment"),
):
    """Monthly instalment for financing this listing (rate: annual %, tenure: years)."""
    p = _get_property(db, parse_id(property_id))
    principal = max(0.0, float(p.price or 0) - float(down_payment))
    emi = calculate_emi(principal, rate, tenure)
    total_payable = emi * tenure * 12
    return success_response(
        data={
            "propertyId": p.id,
            "principal": principal,
            "rate": rate,
            "tenure": tenure,
            "emi": emi,
            "emiDisplay": format_price(emi),
            "totalPayable": total_payable,
            "totalInterest": max(0.0, total_payable - principal),
        }
    )


# -----------------------
# Owner flow
# -----------------------
@router.post("")
def create_property(
    data: PropertyCreateIn,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    p = Property(owner=me, reference=_new_reference(db))
    _apply_fields(p, data, partial=False)
    _apply_agent(p, data.agent_info, fallback=me)
    db.add(p)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Duplicate entry")
    logger.info("Property created: property_id=%s owner_id=%s", p.id, me.id)
    return success_response("Property created successfully", property_out(p), status_code=201)


@router.put("/{property_id}")
def update_property(
    property_id: str,
    data: PropertyUpdateIn,
    background_tasks: BackgroundTasks,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Owner can edit their own listing. Admin can edit any listing.
    Only fields present in the body are touched.
    """
    p = _load_owned(db, property_id, me, "update")
    dropped = _apply_fields(p, data, partial=True)
    if "agent_info" in data.model_fields_set:
        _apply_agent(p, data.agent_info)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Duplicate entry")

    for public_id in dropped:
        background_tasks.add_task(cloudinary_destroy, public_id=public_id)
    logger.info("Property updated: property_id=%s by user_id=%s", p.id, me.id)
    return success_response("Property updated successfully", property_out(p))


@router.delete("/{property_id}")
def delete_property(
    property_id: str,
    background_tasks: BackgroundTasks,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    p = _load_owned(db, property_id, me, "delete")
    public_ids = [img.cloudinary_public_id for img in p.image_rows if img.cloudinary_public_id]

    # Favorites never outlive the listing they point at.
    removed = db.execute(delete(Favorite).where(Favorite.property_id == p.id)).rowcount
    db.delete(p)
    db.flush()

    for public_id in public_ids:
        background_tasks.add_task(cloudinary_destroy, public_id=public_id)
    logger.info("Property deleted: property_id=%s by user_id=%s favorites_removed=%s", p.id, me.id, removed)
    return success_response("Property deleted successfully")


@router.post("/{property_id}/images")
def upload_property_image(
    property_id: str,
    ctx: Annotated[AppContext, Depends(get_ctx)],
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    file: UploadFile = File(...),
):
    """Upload one listing photo to Cloudinary and append it to the image list."""
    p = _load_owned(db, property_id, me, "update")
    if not cloudinary_enabled(ctx.settings):
        raise HTTPException(status_code=503, detail="Image storage is not configured")

    try:
        raw = file.file.read()
    except OSError:
        raise HTTPException(status_code=400, detail="Invalid upload")
    if not raw:
        raise HTTPException(status_code=400, detail="Empty upload")
    max_bytes = ctx.settings.max_upload_image_bytes
    if len(raw) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes // 1_000_000} MB)")

    next_order = max((img.sort_order for img in p.image_rows), default=-1) + 1
    try:
        url, public_id = upload_image(
            ctx.settings,
            raw=raw,
            public_id=f"{p.reference}_{next_order}".lower(),
            reference=p.reference,
        )
    except NotAnImage:
        raise HTTPException(status_code=400, detail="Only image uploads are allowed")
    except Exception:
        logger.exception("Cloudinary upload failed: property_id=%s", p.id)
        raise HTTPException(status_code=502, detail="Image upload failed")

    p.image_rows.append(PropertyImage(url=url, cloudinary_public_id=public_id, sort_order=next_order))
    db.flush()
    logger.info("Property image uploaded: property_id=%s public_id=%s", p.id, public_id)
    return success_response("Image uploaded", property_out(p), status_code=201)
