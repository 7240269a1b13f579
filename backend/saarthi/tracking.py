"""
Best-effort background writes: user interaction events and property view counts.

Both run after the response has been produced, each in its own DB session.
A failure is logged and dropped; it never reaches the caller.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

from fastapi import BackgroundTasks, Request
from sqlalchemy import update as sa_update

from saarthi.db import Database
from saarthi.models import Property, User, UserInteraction


logger = logging.getLogger(__name__)

SESSION_TRACKING_KEY = "tracking_sid"


def client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


def generate_session_id(request: Request) -> str:
    user_agent = request.headers.get("user-agent") or ""
    timestamp = int(time.time() * 1000)
    raw = f"{user_agent}-{client_ip(request)}-{timestamp}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def tracking_session_id(request: Request) -> str:
    sid = request.session.get(SESSION_TRACKING_KEY)
    if not sid:
        sid = generate_session_id(request)
        request.session[SESSION_TRACKING_KEY] = sid
    return sid


def record_interaction(
    database: Database,
    *,
    user_id: int,
    session_id: str,
    action: str,
    details: dict[str, Any],
) -> None:
    try:
        with database.session_scope() as db:
            db.add(UserInteraction(user_id=user_id, session_id=session_id, action=action, details=details))
        logger.debug("Tracked: %s for user_id=%s", action, user_id)
    except Exception:
        logger.exception("Tracking error: action=%s user_id=%s", action, user_id)


def track(
    request: Request,
    background_tasks: BackgroundTasks,
    user: User | None,
    action: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Queue an interaction record for an authenticated principal; anonymous requests are not tracked."""
    if not user:
        return
    try:
        payload = dict(details or {})
        payload["userAgent"] = request.headers.get("user-agent") or ""
        payload["ip"] = client_ip(request)
        background_tasks.add_task(
            record_interaction,
            request.app.state.ctx.database,
            user_id=int(user.id),
            session_id=tracking_session_id(request),
            action=action,
            details=payload,
        )
    except Exception:
        logger.exception("Tracking error: could not queue action=%s", action)


def increment_views(database: Database, property_id: int) -> None:
    try:
        with database.session_scope() as db:
            db.execute(
                sa_update(Property).where(Property.id == int(property_id)).values(views=Property.views + 1, updated_at=Property.updated_at)
            )
    except Exception:
        logger.exception("View increment error: property_id=%s", property_id)
