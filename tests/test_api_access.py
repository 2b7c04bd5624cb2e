"""
tests/test_api_access.py -- Integration tests for /api/v1/access and the
page guard on the API surface.

Covers:
  - Review endpoint returns every page with effective and stored access
  - Write endpoint stores overrides and rejects locked / unknown pages (400)
  - Unknown target user -> 404
  - Non-administrators cannot reach the admin_only "access" page (403)
  - A granted override opens the matching API routes; revoking it closes
    them on the very next request
"""

from __future__ import annotations

import logging

from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestAccessReview:
    def test_review_lists_every_page(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "target")
        resp = client.get(f"/api/v1/access?user_id={target}", headers=_auth(token))
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["id"] == target
        items = {i["key"]: i for i in data["items"]}
        assert list(items) == ["dashboard", "users", "roles", "access"]
        assert items["dashboard"]["locked"] is True
        assert items["dashboard"]["allowed"] is True
        assert items["users"]["locked"] is False
        assert items["users"]["allowed"] is False
        assert items["users"]["stored_allowed"] is None
        assert items["access"]["admin_only"] is True
        assert items["access"]["allowed"] is False

    def test_admin_target_is_allowed_with_no_stored_rows(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "admin2", role_name="admin")
        items = client.get(f"/api/v1/access?user_id={target}", headers=_auth(token)).json()["items"]
        assert all(i["allowed"] for i in items)
        assert all(i["stored_allowed"] is None for i in items)

    def test_unknown_target_404(self, api_client) -> None:
        client, token, _ = api_client
        resp = client.get("/api/v1/access?user_id=999999", headers=_auth(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_missing_user_id_422(self, api_client) -> None:
        client, token, _ = api_client
        resp = client.get("/api/v1/access", headers=_auth(token))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestAccessWrite:
    def test_set_and_read_back(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "target")
        resp = client.put(
            f"/api/v1/access?user_id={target}",
            json={"page_key": "users", "allowed": True},
            headers=_auth(token),
        )
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

        items = client.get(f"/api/v1/access?user_id={target}", headers=_auth(token)).json()["items"]
        users = next(i for i in items if i["key"] == "users")
        assert users["allowed"] is True
        assert users["stored_allowed"] is True

    def test_stored_denial_is_reported(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "target")
        client.put(
            f"/api/v1/access?user_id={target}",
            json={"page_key": "roles", "allowed": False},
            headers=_auth(token),
        )
        items = client.get(f"/api/v1/access?user_id={target}", headers=_auth(token)).json()["items"]
        roles = next(i for i in items if i["key"] == "roles")
        assert roles["allowed"] is False
        assert roles["stored_allowed"] is False

    def test_locked_pages_rejected(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "target")
        for key in ("dashboard", "access"):
            resp = client.put(
                f"/api/v1/access?user_id={target}",
                json={"page_key": key, "allowed": True},
                headers=_auth(token),
            )
            assert resp.status_code == 400
            assert resp.json()["error"]["code"] == "immutable_page"
        assert client.app.state.access_resolver.store.list_for_user(target) == {}

    def test_unknown_page_rejected(self, api_client, make_user) -> None:
        client, token, _ = api_client
        target, _ = make_user(client.app.state.user_store, "target")
        resp = client.put(
            f"/api/v1/access?user_id={target}",
            json={"page_key": "reports", "allowed": True},
            headers=_auth(token),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "page_not_found"

    def test_unknown_target_404(self, api_client) -> None:
        client, token, _ = api_client
        resp = client.put(
            "/api/v1/access?user_id=999999",
            json={"page_key": "users", "allowed": True},
            headers=_auth(token),
        )
        assert resp.status_code == 404


class TestGuardOnApi:
    def test_unauthenticated_401(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _, uid = api_client
        resp = client.get(f"/api/v1/access?user_id={uid}")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_non_admin_cannot_review_access(self, api_client, make_user) -> None:
        client, _, uid = api_client
        _viewer, viewer_token = make_user(client.app.state.user_store, "viewer", role_name="Editor")
        resp = client.get(f"/api/v1/access?user_id={uid}", headers=_auth(viewer_token))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_non_admin_cannot_write_overrides(self, api_client, make_user) -> None:
        client, _, _ = api_client
        viewer, viewer_token = make_user(client.app.state.user_store, "viewer")
        resp = client.put(
            f"/api/v1/access?user_id={viewer}",
            json={"page_key": "users", "allowed": True},
            headers=_auth(viewer_token),
        )
        assert resp.status_code == 403
        assert client.app.state.access_resolver.store.list_for_user(viewer) == {}

    def test_override_opens_and_revocation_closes_users_api(self, api_client, make_user) -> None:
        client, token, _ = api_client
        viewer, viewer_token = make_user(client.app.state.user_store, "viewer")

        assert client.get("/api/v1/users", headers=_auth(viewer_token)).status_code == 403

        client.put(
            f"/api/v1/access?user_id={viewer}",
            json={"page_key": "users", "allowed": True},
            headers=_auth(token),
        )
        assert client.get("/api/v1/users", headers=_auth(viewer_token)).status_code == 200
        pages = client.get("/api/v1/me/pages", headers=_auth(viewer_token)).json()["keys"]
        assert pages == ["dashboard", "users"]

        client.put(
            f"/api/v1/access?user_id={viewer}",
            json={"page_key": "users", "allowed": False},
            headers=_auth(token),
        )
        assert client.get("/api/v1/users", headers=_auth(viewer_token)).status_code == 403
        pages = client.get("/api/v1/me/pages", headers=_auth(viewer_token)).json()["keys"]
        assert pages == ["dashboard"]

    def test_role_options_accept_either_page(self, api_client, make_user) -> None:
        client, token, _ = api_client
        viewer, viewer_token = make_user(client.app.state.user_store, "viewer")
        assert client.get("/api/v1/roles/options", headers=_auth(viewer_token)).status_code == 403

        client.put(
            f"/api/v1/access?user_id={viewer}",
            json={"page_key": "users", "allowed": True},
            headers=_auth(token),
        )
        assert client.get("/api/v1/roles/options", headers=_auth(viewer_token)).status_code == 200
        assert client.get("/api/v1/roles", headers=_auth(viewer_token)).status_code == 403

    def test_role_options_log_no_denial_when_a_later_key_allows(self, api_client, make_user, caplog) -> None:
        client, token, _ = api_client
        viewer, viewer_token = make_user(client.app.state.user_store, "roles-only")
        client.put(
            f"/api/v1/access?user_id={viewer}",
            json={"page_key": "roles", "allowed": True},
            headers=_auth(token),
        )
        with caplog.at_level(logging.INFO, logger="adminconsole.access"):
            assert client.get("/api/v1/roles/options", headers=_auth(viewer_token)).status_code == 200
        assert not [r for r in caplog.records if "Access denied" in r.getMessage()]

    def test_denial_is_logged_once_for_all_keys(self, api_client, make_user, caplog) -> None:
        client, _, _ = api_client
        _viewer, viewer_token = make_user(client.app.state.user_store, "no-pages")
        with caplog.at_level(logging.INFO, logger="adminconsole.access"):
            assert client.get("/api/v1/roles/options", headers=_auth(viewer_token)).status_code == 403
        denials = [r for r in caplog.records if "Access denied" in r.getMessage()]
        assert len(denials) == 1
        assert "'users'" in denials[0].getMessage()
        assert "'roles'" in denials[0].getMessage()

    def test_role_change_applies_immediately(self, api_client, make_user) -> None:
        client, _, uid = api_client
        store = client.app.state.user_store
        viewer, viewer_token = make_user(store, "promoted")
        assert client.get(f"/api/v1/access?user_id={uid}", headers=_auth(viewer_token)).status_code == 403

        store.set_user_role(viewer, store.get_role_by_name("Administrator").id)
        assert client.get(f"/api/v1/access?user_id={uid}", headers=_auth(viewer_token)).status_code == 200

    def test_admin_sees_every_page(self, api_client) -> None:
        client, token, _ = api_client
        keys = client.get("/api/v1/me/pages", headers=_auth(token)).json()["keys"]
        assert keys == ["access", "dashboard", "roles", "users"]
