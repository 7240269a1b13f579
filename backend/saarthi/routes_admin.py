from __future__ import annotations

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from saarthi.deps import get_db, parse_id, require_role
from saarthi.models import Contact, Property, User
from saarthi.schemas import FeatureIn
from saarthi.serializers import contact_out, property_out
from saarthi.utils.helpers import get_pagination, success_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

AdminUser = Annotated[User, Depends(require_role("admin"))]


@router.get("/contacts")
def list_contacts(
    me: AdminUser,
    db: Annotated[Session, Depends(get_db)],
    page: int = Query(default=1),
    limit: int = Query(default=20),
):
    current_page, per_page, skip = get_pagination(page, limit)
    total = int(db.execute(select(func.count()).select_from(Contact)).scalar_one() or 0)
    rows = db.execute(
        select(Contact).order_by(Contact.created_at.desc(), Contact.id.desc()).offset(skip).limit(per_page)
    ).scalars().all()
    return success_response(
        count=len(rows),
        total=total,
        totalPages=math.ceil(total / per_page),
        currentPage=current_page,
        data=[contact_out(c) for c in rows],
    )


@router.post("/properties/{property_id}/feature")
def feature_property(
    property_id: str,
    data: FeatureIn,
    me: AdminUser,
    db: Annotated[Session, Depends(get_db)],
):
    pid = parse_id(property_id)
    p = db.execute(
        select(Property)
        .options(selectinload(Property.owner), selectinload(Property.amenity_rows), selectinload(Property.image_rows))
        .where(Property.id == pid)
    ).scalar_one_or_none()
    if not p:
        raise HTTPException(status_code=404, detail="Property not found")

    p.is_featured = bool(data.featured)
    db.flush()
    logger.info("Property featured=%s: property_id=%s by admin_id=%s", p.is_featured, p.id, me.id)
    return success_response("Property featured" if p.is_featured else "Property unfeatured", property_out(p))
