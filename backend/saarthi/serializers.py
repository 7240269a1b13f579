from __future__ import annotations

import datetime as dt
from typing import Any

from saarthi.models import Contact, Favorite, Property, User
from saarthi.utils.helpers import format_price, generate_slug


def _iso(value: dt.datetime | None) -> str:
    return value.isoformat() if value else ""


def user_out(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "avatar": u.avatar or "",
        "provider": u.provider,
        "role": u.role,
        "phone": u.phone or "",
        "preferences": {
            "notifications": bool(u.notifications),
            "newsletter": bool(u.newsletter),
        },
        "lastLogin": _iso(u.last_login),
        "isActive": bool(u.is_active),
        "createdAt": _iso(u.created_at),
    }


def owner_public(u: User | None, *, include_phone: bool = False) -> dict[str, Any] | None:
    if not u:
        return None
    out = {"id": u.id, "name": u.name, "email": u.email, "avatar": u.avatar or ""}
    if include_phone:
        out["phone"] = u.phone or ""
    return out


def property_out(p: Property, *, include_owner_phone: bool = False) -> dict[str, Any]:
    return {
        "id": p.id,
        "reference": p.reference,
        "slug": generate_slug(p.title, p.id),
        "title": p.title,
        "description": p.description,
        "propertyType": p.property_type,
        "listingType": p.listing_type,
        "address": p.address,
        "city": p.city,
        "state": p.state,
        "pincode": p.pincode,
        "locality": p.locality,
        "bedrooms": p.bedrooms,
        "bathrooms": p.bathrooms,
        "balconies": p.balconies,
        "area": p.area,
        "areaUnit": p.area_unit,
        "furnishing": p.furnishing,
        "facing": p.facing,
        "floor": p.floor,
        "totalFloors": p.total_floors,
        "price": p.price,
        "priceDisplay": format_price(p.price),
        "pricePerSqft": p.price_per_sqft,
        "maintenanceCharges": p.maintenance_charges,
        "priceNegotiable": bool(p.price_negotiable),
        "amenities": p.amenities,
        "images": p.images,
        "yearBuilt": p.year_built,
        "possession": p.possession,
        "parkingSpaces": p.parking_spaces,
        "ownerName": p.owner_name,
        "ownerPhone": p.owner_phone,
        "ownerEmail": p.owner_email,
        "agent": {
            "name": p.agent_name,
            "phone": p.agent_phone,
            "email": p.agent_email,
            "image": p.agent_image,
        },
        "owner": owner_public(p.owner, include_phone=include_owner_phone),
        "status": p.status,
        "isFeatured": bool(p.is_featured),
        "views": int(p.views or 0),
        "extra": dict(p.extra or {}),
        "createdAt": _iso(p.created_at),
        "updatedAt": _iso(p.updated_at),
    }


def favorite_out(f: Favorite, prop: Property | None = None) -> dict[str, Any]:
    p = prop or f.property
    return {
        "id": f.id,
        "propertyId": f.property_id,
        "notes": f.notes or "",
        "addedAt": _iso(f.added_at),
        "property": property_out(p) if p else None,
    }


def contact_out(c: Contact) -> dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "subject": c.subject,
        "message": c.message,
        "propertyInterest": c.property_interest,
        "extra": dict(c.extra or {}),
        "createdAt": _iso(c.created_at),
    }
