"""
Google Sign-In (authorization-code flow).

- Build the consent URL with a per-session `state`
- Exchange the returned code at Google's token endpoint
- Verify the ID token signature/issuer/audience with google-auth
- Resolve the profile to a local account (by Google id, then by email, else create)
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import requests
from google.auth.transport import requests as google_auth_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.orm import Session

from saarthi.config import Settings
from saarthi.models import User


logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
SCOPES = "openid email profile"


class GoogleAuthError(RuntimeError):
    pass


@dataclass(frozen=True)
class GoogleProfile:
    subject: str
    email: str
    email_verified: bool
    name: str
    picture: str

    @classmethod
    def from_claims(cls, info: dict[str, Any]) -> "GoogleProfile":
        email = str(info.get("email") or "").strip().lower()
        return cls(
            subject=str(info.get("sub") or "").strip(),
            email=email,
            email_verified=info.get("email_verified") is not False,
            name=str(info.get("name") or info.get("given_name") or "").strip() or email.split("@", 1)[0],
            picture=str(info.get("picture") or "").strip(),
        )


def authorization_url(settings: Settings, *, redirect_uri: str, state: str) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{AUTH_URL}?{urlencode(params)}"


def exchange_code(settings: Settings, *, code: str, redirect_uri: str) -> GoogleProfile:
    """Trade the authorization code for tokens and return the verified profile."""
    try:
        resp = requests.post(
            TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
            timeout=15,
        )
    except requests.RequestException as e:
        raise GoogleAuthError(f"Token endpoint unreachable: {e}") from e
    if not resp.ok:
        raise GoogleAuthError(f"Token exchange failed: HTTP {resp.status_code}: {resp.text[:300]}")

    raw_id_token = str((resp.json() or {}).get("id_token") or "")
    if not raw_id_token:
        raise GoogleAuthError("Token response missing id_token")
    try:
        info = google_id_token.verify_oauth2_token(
            raw_id_token, google_auth_requests.Request(), audience=settings.google_client_id
        )
    except ValueError as e:
        raise GoogleAuthError(f"Invalid Google token: {e}") from e

    profile = GoogleProfile.from_claims(info)
    if not profile.subject or "@" not in profile.email:
        raise GoogleAuthError("Google token missing subject or email")
    if not profile.email_verified:
        raise GoogleAuthError("Google email is not verified")
    return profile


def resolve_google_user(db: Session, profile: GoogleProfile) -> User:
    """
    Resolution order:
    1. existing account with this Google id -> refresh last login and avatar
    2. existing account with this email -> link the Google id, switch provider to google
    3. otherwise create a new account from the profile
    """
    now = dt.datetime.now(dt.timezone.utc)

    user = db.execute(select(User).where(User.google_id == profile.subject)).scalar_one_or_none()
    if user:
        user.last_login = now
        if profile.picture:
            user.avatar = profile.picture
        logger.info("Existing Google user login: user_id=%s", user.id)
        return user

    user = db.execute(select(User).where(User.email == profile.email)).scalar_one_or_none()
    if user:
        user.google_id = profile.subject
        if profile.picture:
            user.avatar = profile.picture
        user.provider = "google"
        user.last_login = now
        logger.info("Linking Google to existing email: user_id=%s", user.id)
        return user

    user = User(
        google_id=profile.subject,
        name=profile.name,
        email=profile.email,
        avatar=profile.picture,
        provider="google",
        last_login=now,
    )
    db.add(user)
    db.flush()
    logger.info("New Google user created: user_id=%s", user.id)
    return user
