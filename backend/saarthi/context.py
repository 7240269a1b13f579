from __future__ import annotations

from dataclasses import dataclass

from saarthi.config import Settings
from saarthi.db import Database
from saarthi.rate_limit import RateLimiter


@dataclass
class AppContext:
    """Everything a request needs that outlives the request: built once in `create_app`."""

    settings: Settings
    database: Database
    limiter: RateLimiter

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        return cls(
            settings=settings,
            database=Database(settings.database_url),
            limiter=RateLimiter(limit=settings.rate_limit_max, window_seconds=settings.rate_limit_window_seconds),
        )
