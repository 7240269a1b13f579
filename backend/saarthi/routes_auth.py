from __future__ import annotations

import datetime as dt
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saarthi.context import AppContext
from saarthi.deps import get_ctx, get_db, get_optional_user, login_session, logout_session
from saarthi.google_oauth import GoogleAuthError, authorization_url, exchange_code, resolve_google_user
from saarthi.models import User
from saarthi.schemas import LoginIn, RegisterIn
from saarthi.security import hash_password, new_oauth_state, oauth_state_matches, verify_password
from saarthi.serializers import user_out
from saarthi.utils.helpers import email_analysis, success_response


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

OAUTH_STATE_KEY = "oauth_state"


def _principal_out(user: User) -> dict:
    return {**user_out(user), "emailAnalysis": email_analysis(user.email)}


# -----------------------
# Password accounts
# -----------------------
@router.post("/register")
def register(data: RegisterIn, db: Annotated[Session, Depends(get_db)]):
    exists = db.execute(select(User.id).where(User.email == data.email)).first()
    if exists:
        raise HTTPException(status_code=400, detail="Email exists")

    u = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        provider="manual",
        last_login=dt.datetime.now(dt.timezone.utc),
    )
    db.add(u)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email exists")
    logger.info("User registered: user_id=%s", u.id)
    return success_response("Registered", status_code=201)


@router.post("/login")
def login(data: LoginIn, request: Request, db: Annotated[Session, Depends(get_db)]):
    u = db.execute(select(User).where(User.email == data.email)).scalar_one_or_none()
    if not u or not verify_password(data.password, u.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not u.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")

    u.last_login = dt.datetime.now(dt.timezone.utc)
    login_session(request, u)
    logger.info("Password login: user_id=%s", u.id)
    return success_response(data=_principal_out(u))


# -----------------------
# Google Sign-In
# -----------------------
def _google_redirect_uri(request: Request, ctx: AppContext) -> str:
    return ctx.settings.google_callback_url or str(request.url_for("google_callback"))


@router.get("/google")
def google_login(request: Request, ctx: Annotated[AppContext, Depends(get_ctx)]):
    if not ctx.settings.google_enabled:
        raise HTTPException(status_code=503, detail="Google Sign-In is not configured")
    state = new_oauth_state()
    request.session[OAUTH_STATE_KEY] = state
    url = authorization_url(ctx.settings, redirect_uri=_google_redirect_uri(request, ctx), state=state)
    return RedirectResponse(url, status_code=302)


@router.get("/google/callback", name="google_callback")
def google_callback(
    request: Request,
    ctx: Annotated[AppContext, Depends(get_ctx)],
    db: Annotated[Session, Depends(get_db)],
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
):
    client = ctx.settings.client_url
    failure = RedirectResponse(f"{client}/login?error=failed", status_code=302)

    expected = request.session.pop(OAUTH_STATE_KEY, None)
    state_ok = oauth_state_matches(state, expected)
    if error or not code or not state_ok:
        logger.warning("Google callback rejected: error=%s state_match=%s", error, state_ok)
        return failure

    try:
        profile = exchange_code(ctx.settings, code=code, redirect_uri=_google_redirect_uri(request, ctx))
    except GoogleAuthError as e:
        logger.warning("Google OAuth error: %s", e)
        return failure

    try:
        u = resolve_google_user(db, profile)
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.exception("Google account resolution failed: email=%s", profile.email)
        return failure
    if not u.is_active:
        logger.info("Google login refused for disabled account: user_id=%s", u.id)
        return failure

    login_session(request, u)
    return RedirectResponse(f"{client}/?login=success", status_code=302)


# -----------------------
# Session
# -----------------------
@router.get("/check")
def check_auth(me: Annotated[User | None, Depends(get_optional_user)]):
    if me and me.is_active:
        return success_response(isAuthenticated=True, user=_principal_out(me))
    return success_response(isAuthenticated=False, user=None)


@router.post("/logout")
def logout(request: Request):
    logout_session(request)
    return success_response("Logged out")
