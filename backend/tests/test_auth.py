from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import select

from saarthi.google_oauth import GoogleAuthError, GoogleProfile, resolve_google_user
from saarthi.models import User

from conftest import PASSWORD, build_settings


def _profile(**overrides):
    values = dict(
        subject="google-sub-1",
        email="asha@example.com",
        email_verified=True,
        name="Asha",
        picture="https://lh3.example.com/asha.png",
    )
    values.update(overrides)
    return GoogleProfile(**values)


class TestRegisterAndLogin:
    def test_register_then_login(self, client):
        resp = client.post("/api/auth/register", json={"name": "Asha", "email": "Asha@Example.com", "password": PASSWORD})
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "message": "Registered"}

        resp = client.post("/api/auth/login", json={"email": "asha@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        user = resp.json()["data"]
        assert user["email"] == "asha@example.com"
        assert user["provider"] == "manual"
        assert user["emailAnalysis"] == {"totalDigitsSum": 0}
        assert "passwordHash" not in user and "password_hash" not in user

    def test_duplicate_email_rejected(self, client):
        body = {"name": "Asha", "email": "asha@example.com", "password": PASSWORD}
        assert client.post("/api/auth/register", json=body).status_code == 201
        resp = client.post("/api/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email exists"

    def test_register_validation_is_aggregated(self, client):
        resp = client.post("/api/auth/register", json={"name": "", "email": "nope", "password": "123"})
        assert resp.status_code == 400
        message = resp.json()["message"]
        assert "name" in message and "email" in message and "password" in message

    def test_wrong_password(self, client, create_user):
        create_user("asha@example.com")
        resp = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "wrong-pass"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Invalid credentials"}

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert resp.status_code == 401

    def test_google_only_account_cannot_password_login(self, client, database):
        with database.session_scope() as db:
            db.add(User(name="G", email="g@example.com", provider="google", google_id="sub-g"))
        resp = client.post("/api/auth/login", json={"email": "g@example.com", "password": PASSWORD})
        assert resp.status_code == 401

    def test_disabled_account(self, client, create_user):
        create_user("off@example.com", is_active=False)
        resp = client.post("/api/auth/login", json={"email": "off@example.com", "password": PASSWORD})
        assert resp.status_code == 403


class TestSession:
    def test_check_when_anonymous(self, client):
        resp = client.get("/api/auth/check")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "isAuthenticated": False, "user": None}

    def test_check_and_logout(self, login_as):
        c = login_as("asha1@example.com")
        body = c.get("/api/auth/check").json()
        assert body["isAuthenticated"] is True
        assert body["user"]["email"] == "asha1@example.com"
        assert body["user"]["emailAnalysis"] == {"totalDigitsSum": 1}

        resp = c.post("/api/auth/logout")
        assert resp.json() == {"success": True, "message": "Logged out"}
        assert c.get("/api/auth/check").json()["isAuthenticated"] is False

    def test_session_cookie_is_http_only(self, create_user, client):
        create_user("asha@example.com")
        resp = client.post("/api/auth/login", json={"email": "asha@example.com", "password": PASSWORD})
        cookie = resp.headers["set-cookie"]
        assert cookie.startswith("saarthi.sid=")
        assert "httponly" in cookie.lower()
        assert "samesite=lax" in cookie.lower()

    def test_protected_route_requires_login(self, client):
        resp = client.get("/api/favorites")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Please login to access this resource"

    def test_root_reports_principal(self, login_as, client):
        assert client.get("/").json()["user"] == "Guest"
        c = login_as("asha@example.com")
        assert c.get("/").json()["user"] == "asha@example.com"


class TestGoogleResolution:
    def test_creates_new_account(self, database):
        with database.session_scope() as db:
            u = resolve_google_user(db, _profile())
            assert u.id is not None
            assert u.provider == "google"
            assert u.password_hash is None

    def test_links_existing_email_account(self, database, create_user):
        user_id = create_user("asha@example.com")
        with database.session_scope() as db:
            u = resolve_google_user(db, _profile())
            assert u.id == user_id
            assert u.google_id == "google-sub-1"
            assert u.provider == "google"
            assert u.avatar == "https://lh3.example.com/asha.png"
            # The password still works for a linked account.
            assert u.password_hash

    def test_google_id_wins_over_email(self, database):
        with database.session_scope() as db:
            db.add(User(name="Old", email="old@example.com", google_id="google-sub-1", provider="google"))
        with database.session_scope() as db:
            u = resolve_google_user(db, _profile(email="new@example.com", picture="https://new/avatar.png"))
            assert u.email == "old@example.com"
            assert u.avatar == "https://new/avatar.png"
            assert db.execute(select(User).where(User.email == "new@example.com")).scalar_one_or_none() is None


class TestGoogleFlow:
    @pytest.fixture
    def settings(self):
        return build_settings(google_client_id="cid.apps.googleusercontent.com", google_client_secret="shh")

    def _start(self, client):
        resp = client.get("/api/auth/google", follow_redirects=False)
        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.netloc == "accounts.google.com"
        return parse_qs(location.query)["state"][0]

    def test_not_configured(self, app, client):
        app.state.ctx.settings = build_settings()
        resp = client.get("/api/auth/google", follow_redirects=False)
        assert resp.status_code == 503

    def test_callback_signs_in(self, client, monkeypatch):
        state = self._start(client)
        monkeypatch.setattr("saarthi.routes_auth.exchange_code", lambda settings, code, redirect_uri: _profile())

        resp = client.get(f"/api/auth/google/callback?code=abc&state={state}", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "http://localhost:3000/?login=success"
        body = client.get("/api/auth/check").json()
        assert body["isAuthenticated"] is True
        assert body["user"]["provider"] == "google"

    def test_callback_with_bad_state(self, client, monkeypatch):
        self._start(client)
        monkeypatch.setattr("saarthi.routes_auth.exchange_code", lambda settings, code, redirect_uri: _profile())
        resp = client.get("/api/auth/google/callback?code=abc&state=forged", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "http://localhost:3000/login?error=failed"
        assert client.get("/api/auth/check").json()["isAuthenticated"] is False

    def test_callback_when_exchange_fails(self, client, monkeypatch):
        state = self._start(client)

        def _fail(settings, code, redirect_uri):
            raise GoogleAuthError("Google email is not verified")

        monkeypatch.setattr("saarthi.routes_auth.exchange_code", _fail)
        resp = client.get(f"/api/auth/google/callback?code=abc&state={state}", follow_redirects=False)
        assert resp.headers["location"] == "http://localhost:3000/login?error=failed"
