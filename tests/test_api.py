"""
Tests for the admin API.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from radio_cms.api import Actor, Role, create_application, create_session_token
from radio_cms.api.security import decode_session_token
from radio_cms.clock import utcnow

pytestmark = pytest.mark.api


def bearer(config, role=Role.CONTENT_MANAGER, user_id="u1", **kwargs):
    actor = Actor(user_id=user_id, email=f"{user_id}@station.org", role=role)
    return {"Authorization": f"Bearer {create_session_token(actor, config, **kwargs)}"}


@pytest.fixture
def client(cms_config, engine):
    app = create_application(config=cms_config, engine=engine)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def editor(cms_config):
    return bearer(cms_config)


@pytest.fixture
def admin(cms_config):
    return bearer(cms_config, role=Role.ADMINISTRATOR, user_id="admin-1")


class TestSessionTokens:
    def test_round_trip(self, cms_config):
        actor = Actor(user_id="u1", email="editor@station.org", role=Role.ADMINISTRATOR)
        decoded = decode_session_token(create_session_token(actor, cms_config), cms_config)
        assert decoded == actor
        assert decoded.is_administrator

    def test_wrong_secret(self, cms_config):
        actor = Actor(user_id="u1", email="e@station.org", role=Role.USER)
        token = create_session_token(actor, cms_config)
        other = cms_config.model_copy(update={"jwt_secret": "other"})
        with pytest.raises(ValueError, match="Invalid session token"):
            decode_session_token(token, other)

    def test_session_older_than_max_age(self, cms_config):
        actor = Actor(user_id="u1", email="e@station.org", role=Role.USER)
        token = create_session_token(
            actor,
            cms_config,
            expires_delta=timedelta(days=7),
            issued_at=utcnow() - timedelta(hours=25),
        )
        with pytest.raises(ValueError, match="expired"):
            decode_session_token(token, cms_config)


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/admin/trash")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    def test_garbage_token(self, client):
        response = client.get(
            "/admin/trash", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_expired_token(self, client, cms_config):
        headers = bearer(
            cms_config,
            issued_at=utcnow() - timedelta(hours=2),
            expires_delta=timedelta(hours=1),
        )
        response = client.get("/admin/trash", headers=headers)
        assert response.status_code == 401
        assert "expired" in response.json()["error"]["message"]

    def test_plain_user_cannot_use_trash(self, client, cms_config):
        response = client.get("/admin/trash", headers=bearer(cms_config, role=Role.USER))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTHORIZATION_ERROR"


class TestTrashEndpoints:
    def test_empty_trash(self, client, editor):
        response = client.get("/admin/trash", headers=editor)
        assert response.status_code == 200
        assert response.json() == {
            "articles": [],
            "shows": [],
            "episodes": [],
            "events": [],
            "resources": [],
        }

    def test_delete_then_list(self, client, editor, make_item, users):
        article = make_item(title="Station News")

        response = client.delete(f"/admin/articles/{article.id}", headers=editor)
        assert response.status_code == 204

        body = client.get("/admin/trash", headers=editor).json()
        (entry,) = body["articles"]
        assert entry["id"] == article.id
        assert entry["title"] == "Station News"
        assert entry["deletedBy"] == "editor@station.org"
        assert entry["deletedById"] == "u1"
        assert entry["protected"] is False
        assert {"deletedAt", "purgeAfter"} <= set(entry)

    def test_trash_limit(self, client, editor, make_item):
        for i in range(3):
            item = make_item(title=f"A{i}")
            client.delete(f"/admin/articles/{item.id}", headers=editor)

        body = client.get("/admin/trash?limit=2", headers=editor).json()
        assert len(body["articles"]) == 2

    def test_deleted_item_leaves_public_listing(self, client, editor, make_item):
        kept = make_item(title="Kept")
        gone = make_item(title="Gone")
        client.delete(f"/admin/articles/{gone.id}", headers=editor)

        items = client.get("/articles").json()["items"]
        assert [i["id"] for i in items] == [kept.id]
        assert "deletedAt" not in items[0]
        assert client.get(f"/articles/{gone.id}").status_code == 404

    def test_delete_missing(self, client, editor):
        response = client.delete("/admin/articles/999", headers=editor)
        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "code": "NOT_FOUND",
                "message": "articles item 999 not found",
                "details": {"contentType": "articles", "id": "999"},
            }
        }

    def test_delete_twice(self, client, editor, make_item):
        article = make_item()
        client.delete(f"/admin/articles/{article.id}", headers=editor)
        response = client.delete(f"/admin/articles/{article.id}", headers=editor)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_DELETED"

    def test_protected_delete_needs_administrator(
        self, client, editor, admin, make_item
    ):
        resource = make_item("resources", title="Constitution", protected=True)

        response = client.delete(f"/admin/resources/{resource.id}", headers=editor)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PROTECTED_CONTENT"

        response = client.delete(f"/admin/resources/{resource.id}", headers=admin)
        assert response.status_code == 204

    def test_restore(self, client, editor, make_item):
        article = make_item(title="Comeback")
        client.delete(f"/admin/articles/{article.id}", headers=editor)

        response = client.post(f"/admin/articles/{article.id}/restore", headers=editor)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == article.id
        assert body["title"] == "Comeback"
        assert body["deletedAt"] is None
        assert body["deletedBy"] is None
        assert client.get(f"/articles/{article.id}").status_code == 200

    def test_restore_active_item(self, client, editor, make_item):
        article = make_item()
        response = client.post(f"/admin/articles/{article.id}/restore", headers=editor)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_ACTIVE"

    def test_restore_missing_item(self, client, editor):
        response = client.post("/admin/events/5/restore", headers=editor)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_unknown_content_type(self, client, editor):
        response = client.delete("/admin/podcasts/1", headers=editor)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UNKNOWN_CONTENT_TYPE"
        assert client.get("/podcasts").status_code == 404

    def test_store_unavailable(self, client, editor, engine):
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE resources"))

        for response in (
            client.get("/admin/trash", headers=editor),
            client.get("/resources"),
            client.get("/resources/1"),
            client.delete("/admin/resources/1", headers=editor),
        ):
            assert response.status_code == 503
            assert response.json()["error"]["code"] == "STORE_UNAVAILABLE"


class TestProtectionEndpoints:
    def test_administrator_toggles_protection(self, client, admin, make_item):
        resource = make_item("resources")

        response = client.patch(f"/admin/resources/{resource.id}/protect", headers=admin)
        assert response.status_code == 200
        assert response.json()["protected"] is True

        response = client.patch(
            f"/admin/resources/{resource.id}/unprotect", headers=admin
        )
        assert response.json()["protected"] is False

    def test_content_manager_cannot_protect(self, client, editor, make_item):
        resource = make_item("resources")
        response = client.patch(
            f"/admin/resources/{resource.id}/protect", headers=editor
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTHORIZATION_ERROR"

    def test_cannot_protect_deleted_item(self, client, admin, make_item):
        resource = make_item("resources")
        client.delete(f"/admin/resources/{resource.id}", headers=admin)
        response = client.patch(f"/admin/resources/{resource.id}/protect", headers=admin)
        assert response.status_code == 404


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"
