from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


# Do not override existing environment variables.
load_dotenv(override=False)


_DEV_SESSION_SECRET = "fallback_secret_do_not_use_in_prod"


def _int_env(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw or str(default))
    except ValueError:
        return default


def database_url() -> str:
    url = os.environ.get("DATABASE_URL") or "sqlite:///./local.db"
    # Some managed providers still supply `postgres://...` which SQLAlchemy treats as invalid.
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def session_secret() -> str:
    return os.environ.get("SESSION_SECRET") or _DEV_SESSION_SECRET


def is_local_dev() -> bool:
    """
    We treat the app as "local dev" when DATABASE_URL is not set, because
    `database_url()` falls back to sqlite in that case.
    """
    return not (os.environ.get("DATABASE_URL") or "").strip()


def app_env() -> str:
    """
    Application environment marker:
    - local (default when running with sqlite fallback)
    - staging
    - prod
    """
    raw = (os.environ.get("APP_ENV") or "").strip().lower()
    if raw:
        return raw
    return "local" if is_local_dev() else "prod"


def is_production() -> bool:
    return app_env() in {"prod", "production"}


def client_url() -> str:
    raw = (os.environ.get("CLIENT_URL") or "http://localhost:3000").strip()
    return raw.rstrip("/")


def port() -> int:
    return _int_env("PORT", 5000)


def allowed_hosts() -> list[str]:
    """
    Comma-separated list for TrustedHost middleware.
    Example: ALLOWED_HOSTS=api.example.com,example.com
    """
    raw = (os.environ.get("ALLOWED_HOSTS") or "").strip()
    if not raw:
        return ["*"]
    hosts = [h.strip() for h in raw.split(",") if h.strip()]
    return hosts or ["*"]


def forwarded_allow_ips() -> list[str]:
    """
    Peers whose X-Forwarded-For / X-Forwarded-Proto are believed (comma-separated IPs or CIDRs).
    Only the local reverse proxy by default; "*" trusts every peer.
    """
    raw = (os.environ.get("FORWARDED_ALLOW_IPS") or "").strip()
    ips = [h.strip() for h in raw.split(",") if h.strip()]
    return ips or ["127.0.0.1"]


def rate_limit_max() -> int:
    return max(1, _int_env("RATE_LIMIT_MAX", 100))


def rate_limit_window_seconds() -> int:
    return max(1, _int_env("RATE_LIMIT_WINDOW_SECONDS", 15 * 60))


def session_max_age() -> int:
    return max(60, _int_env("SESSION_MAX_AGE", 24 * 60 * 60))


def max_upload_image_bytes() -> int:
    # Default: 10 MB (raw upload bytes).
    return _int_env("MAX_UPLOAD_IMAGE_BYTES", 10_000_000)


def cloudinary_credentials() -> tuple[str, str, str]:
    """(cloud_name, api_key, api_secret); any empty part disables uploads."""
    return (
        (os.environ.get("CLOUDINARY_CLOUD_NAME") or "").strip(),
        (os.environ.get("CLOUDINARY_API_KEY") or "").strip(),
        (os.environ.get("CLOUDINARY_API_SECRET") or "").strip(),
    )


def cloudinary_folder() -> str:
    return (os.environ.get("CLOUDINARY_FOLDER") or "").strip() or "saarthi-properties"


# -----------------------
# Google Sign-In (OAuth)
# -----------------------
def google_client_id() -> str:
    return (os.environ.get("GOOGLE_CLIENT_ID") or "").strip()


def google_client_secret() -> str:
    return (os.environ.get("GOOGLE_CLIENT_SECRET") or "").strip()


def google_callback_url() -> str:
    """
    Absolute redirect URI registered with Google.
    Empty means "derive it from the incoming request".
    """
    return (os.environ.get("GOOGLE_CALLBACK_URL") or "").strip()


def configure_logging() -> None:
    level = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./local.db"
    session_secret: str = _DEV_SESSION_SECRET
    client_url: str = "http://localhost:3000"
    port: int = 5000
    app_env: str = "local"
    allowed_hosts: list[str] = field(default_factory=lambda: ["*"])
    forwarded_allow_ips: list[str] = field(default_factory=lambda: ["127.0.0.1"])
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = ""
    rate_limit_max: int = 100
    rate_limit_window_seconds: int = 15 * 60
    session_max_age: int = 24 * 60 * 60
    max_upload_image_bytes: int = 10_000_000
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_folder: str = "saarthi-properties"

    @property
    def is_production(self) -> bool:
        return self.app_env in {"prod", "production"}

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        cloud_name, api_key, api_secret = cloudinary_credentials()
        return cls(
            database_url=database_url(),
            session_secret=session_secret(),
            client_url=client_url(),
            port=port(),
            app_env=app_env(),
            allowed_hosts=allowed_hosts(),
            forwarded_allow_ips=forwarded_allow_ips(),
            google_client_id=google_client_id(),
            google_client_secret=google_client_secret(),
            google_callback_url=google_callback_url(),
            rate_limit_max=rate_limit_max(),
            rate_limit_window_seconds=rate_limit_window_seconds(),
            session_max_age=session_max_age(),
            max_upload_image_bytes=max_upload_image_bytes(),
            cloudinary_cloud_name=cloud_name,
            cloudinary_api_key=api_key,
            cloudinary_api_secret=api_secret,
            cloudinary_folder=cloudinary_folder(),
        )


def enforce_secure_secrets(settings: Settings) -> None:
    """
    Fail-fast in production if dangerous defaults are still in use.
    """
    if settings.is_production and settings.session_secret == _DEV_SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET must be set in production (default dev secret detected)")
