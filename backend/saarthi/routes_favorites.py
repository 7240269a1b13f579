from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from saarthi.deps import get_current_user, get_db, parse_id
from saarthi.models import Favorite, Property, User
from saarthi.schemas import FavoriteIn
from saarthi.serializers import favorite_out
from saarthi.tracking import track
from saarthi.utils.helpers import success_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


def _find_favorite(db: Session, user_id: int, property_id: int) -> Favorite | None:
    return db.execute(
        select(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id)
    ).scalar_one_or_none()


@router.get("")
def list_favorites(
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    stmt = (
        select(Favorite)
        .options(
            selectinload(Favorite.property).selectinload(Property.owner),
            selectinload(Favorite.property).selectinload(Property.amenity_rows),
            selectinload(Favorite.property).selectinload(Property.image_rows),
        )
        .where(Favorite.user_id == me.id)
        .order_by(Favorite.added_at.desc(), Favorite.id.desc())
    )
    rows = db.execute(stmt).scalars().all()
    # Rows whose listing is gone are skipped rather than returned with a null property.
    items = [favorite_out(f) for f in rows if f.property is not None]
    return success_response(count=len(items), data=items)


@router.post("")
def add_favorite(
    data: FavoriteIn,
    request: Request,
    background_tasks: BackgroundTasks,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    pid = parse_id(data.property_id)
    p = db.get(Property, pid)
    if not p:
        raise HTTPException(status_code=404, detail="Property not found")
    if _find_favorite(db, me.id, pid):
        raise HTTPException(status_code=400, detail="Property already in favorites")

    f = Favorite(user_id=me.id, property_id=pid, notes=data.notes or "")
    db.add(f)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Property already in favorites")

    # Background tracking writes through its own session; make ours visible first.
    db.commit()
    track(request, background_tasks, me, "favorite_add", {"propertyId": pid})
    return success_response("Property added to favorites", favorite_out(f, p), status_code=201)


@router.get("/check/{property_id}")
def check_favorite(
    property_id: str,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    pid = parse_id(property_id)
    return success_response(isFavorite=_find_favorite(db, me.id, pid) is not None)


@router.delete("/{property_id}")
def remove_favorite(
    property_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    pid = parse_id(property_id)
    f = _find_favorite(db, me.id, pid)
    if not f:
        raise HTTPException(status_code=404, detail="Favorite not found")
    db.delete(f)
    db.commit()

    track(request, background_tasks, me, "favorite_remove", {"propertyId": pid})
    return success_response("Property removed from favorites")


@router.delete("")
def clear_favorites(
    me: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    removed = db.execute(delete(Favorite).where(Favorite.user_id == me.id)).rowcount or 0
    logger.info("Favorites cleared: user_id=%s count=%s", me.id, removed)
    return success_response(f"Cleared {removed} favorites")
