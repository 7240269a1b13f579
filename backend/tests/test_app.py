"""
App-level behaviour: middleware chain, rate limiting, error envelope, health/meta routes.
"""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from saarthi.config import Settings, enforce_secure_secrets
from saarthi.main import create_app
from saarthi.rate_limit import RateLimiter

from conftest import build_settings


class TestRateLimit:
    @pytest.fixture
    def settings(self):
        return build_settings(rate_limit_max=3)

    def test_api_requests_limited_per_ip(self, client):
        remaining = []
        for _ in range(3):
            resp = client.get("/api/health")
            assert resp.status_code == 200
            assert resp.headers["x-ratelimit-limit"] == "3"
            remaining.append(resp.headers["x-ratelimit-remaining"])
        assert remaining == ["2", "1", "0"]
        resp = client.get("/api/health")
        assert resp.status_code == 429
        assert int(resp.headers["retry-after"]) >= 1
        assert resp.json() == {
            "success": False,
            "error": "Too many requests from this IP, please try again later.",
        }

    def test_spoofed_forwarded_for_does_not_reset_quota(self, client):
        codes = [
            client.get("/api/properties", headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
            for i in range(5)
        ]
        assert codes == [200, 200, 200, 429, 429]

    def test_non_api_paths_not_limited(self, client):
        for _ in range(5):
            assert client.get("/").status_code == 200

    def test_limiter_window(self):
        limiter = RateLimiter(limit=2, window_seconds=60)
        limiter.hit(key="ip:1")
        limiter.hit(key="ip:1")
        assert limiter.hit(key="ip:2").remaining == 1
        with pytest.raises(HTTPException) as exc:
            limiter.hit(key="ip:1")
        assert exc.value.status_code == 429
        assert exc.value.headers["X-RateLimit-Remaining"] == "0"

    def test_window_expiry(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr("saarthi.rate_limit.time.monotonic", lambda: clock[0])
        limiter = RateLimiter(limit=1, window_seconds=60)
        limiter.hit(key="ip:1")
        clock[0] += 61
        assert limiter.hit(key="ip:1").remaining == 0

    def test_idle_keys_are_dropped(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr("saarthi.rate_limit.time.monotonic", lambda: clock[0])
        limiter = RateLimiter(limit=5, window_seconds=60)
        for i in range(20):
            limiter.hit(key=f"ip:10.0.0.{i}")
        assert len(limiter._hits) == 20
        clock[0] += 61
        limiter.hit(key="ip:1")
        assert list(limiter._hits) == ["ip:1"]


class TestMiddleware:
    def test_security_headers(self, client):
        resp = client.get("/api/health")
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "DENY"
        assert resp.headers["cross-origin-resource-policy"] == "cross-origin"

    def test_cors_allows_client_origin_with_credentials(self, client):
        resp = client.options(
            "/api/properties",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
        assert resp.headers["access-control-allow-credentials"] == "true"

    def test_cors_rejects_other_origins(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://evil.example.com"})
        assert "access-control-allow-origin" not in resp.headers

    def test_production_cookie_flags(self):
        settings = build_settings(app_env="prod")
        with TestClient(create_app(settings), base_url="https://testserver") as c:
            c.app.state.ctx.database.create_all()
            resp = c.post("/api/auth/register", json={"name": "A", "email": "a@example.com", "password": "secret123"})
            assert resp.status_code == 201
            resp = c.post("/api/auth/login", json={"email": "a@example.com", "password": "secret123"})
            cookie = resp.headers["set-cookie"].lower()
            assert "secure" in cookie
            assert "samesite=none" in cookie


class TestErrors:
    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    def test_unexpected_error_is_500(self, app):
        @app.get("/api/boom")
        def boom():
            raise RuntimeError("kaboom")

        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.get("/api/boom")
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Server Error"}


class TestMeta:
    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["authenticated"] is False

    def test_locations(self, client):
        data = client.get("/api/meta/locations").json()["data"]
        assert "Karnataka" in data["states"]
        assert "Bangalore" in data["cities"]


class TestConfig:
    def test_production_refuses_default_secret(self):
        with pytest.raises(RuntimeError):
            enforce_secure_secrets(Settings(app_env="prod"))

    def test_forwarded_allow_ips(self, monkeypatch):
        monkeypatch.delenv("FORWARDED_ALLOW_IPS", raising=False)
        assert Settings.from_env().forwarded_allow_ips == ["127.0.0.1"]
        monkeypatch.setenv("FORWARDED_ALLOW_IPS", "10.0.0.1, 10.1.0.0/16")
        assert Settings.from_env().forwarded_allow_ips == ["10.0.0.1", "10.1.0.0/16"]

    def test_postgres_url_normalised(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/saarthi")
        monkeypatch.setenv("CLIENT_URL", "https://saarthi.example.com/")
        settings = Settings.from_env()
        assert settings.database_url == "postgresql://u:p@db/saarthi"
        assert settings.client_url == "https://saarthi.example.com"
        assert settings.app_env in {"test", "prod"}
