"""
Shared fixtures: every test gets a fresh app bound to its own in-memory SQLite database.

Run: pytest -v
"""

import os

# Importing saarthi.main builds the module-level app from the environment; keep it out of prod mode.
os.environ.setdefault("APP_ENV", "test")

import pytest
from fastapi.testclient import TestClient

from saarthi.config import Settings
from saarthi.main import create_app
from saarthi.models import User
from saarthi.security import hash_password


PASSWORD = "secret123"


def build_settings(**overrides):
    values = {
        "database_url": "sqlite://",
        "session_secret": "test-session-secret",
        "app_env": "test",
        "client_url": "http://localhost:3000",
        "rate_limit_max": 10_000,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return build_settings()


@pytest.fixture
def app(settings):
    application = create_app(settings)
    application.state.ctx.database.create_all()
    yield application
    application.state.ctx.database.dispose()


@pytest.fixture
def database(app):
    return app.state.ctx.database


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def new_client(app):
    """Factory for extra clients, each with its own cookie jar (one per signed-in user)."""
    clients = []

    def _new():
        c = TestClient(app)
        clients.append(c)
        return c

    yield _new
    for c in clients:
        c.close()


@pytest.fixture
def create_user(database):
    def _create(email, *, role="user", password=PASSWORD, name="Test User", phone="9876543210", is_active=True):
        with database.session_scope() as db:
            u = User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=role,
                phone=phone,
                is_active=is_active,
            )
            db.add(u)
            db.flush()
            return u.id

    return _create


@pytest.fixture
def login_as(create_user, new_client):
    """Create an account and return a client that is signed in as it."""

    def _login(email="owner@example.com", *, role="user", **fields):
        create_user(email, role=role, **fields)
        c = new_client()
        resp = c.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return c

    return _login


@pytest.fixture
def listing_payload():
    def _payload(**overrides):
        body = {
            "title": "3 BHK Apartment in Koramangala",
            "description": "Sunny corner flat close to the metro.",
            "propertyType": "apartment",
            "listingType": "sale",
            "city": "Bangalore",
            "state": "Karnataka",
            "locality": "Koramangala",
            "pincode": "560034",
            "bedrooms": 3,
            "bathrooms": 2,
            "area": 1450,
            "furnishing": "semi-furnished",
            "price": 15_000_000,
            "amenities": ["gym", "parking"],
            "images": ["https://img.example.com/a.jpg"],
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def create_listing(listing_payload):
    def _create(c, **overrides):
        resp = c.post("/api/properties", json=listing_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create
