from __future__ import annotations

import hmac
import secrets

import bcrypt


BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    # The hash string carries its own salt and cost factor.
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    """False for Google-only accounts (no stored hash) and for malformed hashes."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


def new_oauth_state() -> str:
    return secrets.token_urlsafe(24)


def oauth_state_matches(received: str | None, expected: str | None) -> bool:
    if not received or not expected:
        return False
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))
