from __future__ import annotations

import logging
from typing import Annotated, Any, Callable, Iterator

from fastapi import BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from saarthi.context import AppContext
from saarthi.models import User
from saarthi.tracking import track
from saarthi.utils.helpers import MAX_DB_INT


logger = logging.getLogger(__name__)

SESSION_USER_KEY = "uid"


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def get_db(ctx: Annotated[AppContext, Depends(get_ctx)]) -> Iterator[Session]:
    with ctx.database.session_scope() as db:
        yield db


def parse_id(raw: Any, *, label: str = "property") -> int:
    """Path/body identifiers arrive as strings; anything but a positive BIGINT is a 400."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    if value <= 0 or value > MAX_DB_INT:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    return value


def login_session(request: Request, user: User) -> None:
    """Only the principal id goes into the session payload."""
    request.session[SESSION_USER_KEY] = int(user.id)


def logout_session(request: Request) -> None:
    request.session.clear()


def get_optional_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> User | None:
    uid = request.session.get(SESSION_USER_KEY)
    if not uid:
        return None
    try:
        user = db.get(User, int(uid))
    except (TypeError, ValueError):
        return None
    if not user:
        # Stale session (account removed): drop it.
        request.session.pop(SESSION_USER_KEY, None)
        return None
    return user


def get_current_user(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    if not user:
        raise HTTPException(status_code=401, detail="Please login to access this resource")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")
    return user


def require_role(role: str) -> Callable[..., User]:
    """
    Dependency factory for role-gated routes.

    Usage:
        @router.get("/admin/contacts")
        def list_contacts(me: Annotated[User, Depends(require_role("admin"))]): ...
    """

    def _check_role(me: Annotated[User, Depends(get_current_user)]) -> User:
        if (me.role or "").lower() != role:
            logger.info("Role check failed: user_id=%s role=%s required=%s", me.id, me.role, role)
            raise HTTPException(status_code=403, detail=f"{role.capitalize()} access required")
        return me

    return _check_role


def track_page_view(page: str) -> Callable[..., None]:
    """Route dependency: queue a `page_view` interaction for signed-in visitors."""

    def _page_view(
        request: Request,
        background_tasks: BackgroundTasks,
        me: Annotated[User | None, Depends(get_optional_user)],
    ) -> None:
        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"
        track(request, background_tasks, me, "page_view", {"page": page, "url": url})

    return _page_view
