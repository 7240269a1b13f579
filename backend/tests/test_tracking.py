from unittest.mock import MagicMock

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from saarthi.models import Property, UserInteraction
from saarthi.tracking import increment_views, record_interaction


def _interactions(database):
    with database.session_scope() as db:
        rows = db.execute(select(UserInteraction).order_by(UserInteraction.id)).scalars()
        return [(i.action, dict(i.details), i.session_id) for i in rows]


class TestTracking:
    def test_signed_in_view_is_recorded(self, login_as, create_listing, database):
        c = login_as()
        pid = create_listing(c)["id"]
        c.get(f"/api/properties/{pid}", headers={"User-Agent": "pytest-agent"})

        rows = _interactions(database)
        assert len(rows) == 1
        action, details, session_id = rows[0]
        assert action == "property_view"
        assert details["propertyId"] == pid
        assert details["userAgent"] == "pytest-agent"
        assert "ip" in details
        assert len(session_id) == 32

    def test_anonymous_requests_are_not_tracked(self, login_as, create_listing, client, database):
        pid = create_listing(login_as())["id"]
        client.get(f"/api/properties/{pid}")
        client.get("/api/properties", params={"search": "flat"})
        assert _interactions(database) == []

    def test_session_id_is_reused(self, login_as, create_listing, database):
        c = login_as()
        pid = create_listing(c)["id"]
        c.get(f"/api/properties/{pid}")
        c.get("/api/properties", params={"search": "apartment", "bedrooms": "2"})
        c.post("/api/favorites", json={"propertyId": pid})

        rows = _interactions(database)
        assert [r[0] for r in rows] == ["property_view", "page_view", "property_search", "favorite_add"]
        assert len({r[2] for r in rows}) == 1
        assert rows[2][1]["search"] == "apartment"
        assert rows[2][1]["bedrooms"] == 2

    def test_browse_pages_record_page_view(self, login_as, database):
        c = login_as()
        c.get("/api/properties", params={"page": 2})
        c.get("/api/properties/featured")

        rows = _interactions(database)
        assert [(r[0], r[1]["page"], r[1]["url"]) for r in rows] == [
            ("page_view", "properties", "/api/properties?page=2"),
            ("page_view", "featured", "/api/properties/featured"),
        ]

    def test_contact_submission_tracked_for_signed_in_user(self, login_as, database):
        c = login_as()
        c.post("/api/contact", json={"name": "A", "email": "a@example.com", "message": "hello"})
        assert [r[0] for r in _interactions(database)] == ["contact_submit"]


class TestBestEffortWrites:
    def _broken_database(self):
        database = MagicMock()
        database.session_scope.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
        return database

    def test_record_interaction_swallows_errors(self, caplog):
        record_interaction(self._broken_database(), user_id=1, session_id="s", action="property_view", details={})
        assert "Tracking error" in caplog.text

    def test_increment_views_swallows_errors(self, caplog):
        increment_views(self._broken_database(), 1)
        assert "View increment error" in caplog.text

    def test_increment_views_keeps_updated_at(self, login_as, create_listing, database):
        pid = create_listing(login_as())["id"]
        with database.session_scope() as db:
            before = db.get(Property, pid).updated_at
        increment_views(database, pid)
        with database.session_scope() as db:
            p = db.get(Property, pid)
            assert p.views == 1
            assert p.updated_at == before
