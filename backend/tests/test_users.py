"""
API tests for the admin gate (user listing, status changes) and profile updates.
"""
import pytest

from conftest import bearer, register

pytestmark = pytest.mark.api


class TestAdminListing:

    def test_non_admin_is_forbidden(self, client, user):
        response = client.get("/api/users", headers=bearer(user["accessToken"]))
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_anonymous_is_unauthenticated(self, client):
        assert client.get("/api/users").status_code == 401

    def test_admin_lists_newest_first(self, client, admin):
        first = register(client, username="older")
        second = register(client, username="newer")
        response = client.get("/api/users", headers=bearer(admin["accessToken"]))
        assert response.status_code == 200
        body = response.json()
        ids = [u["id"] for u in body["data"]]
        assert ids.index(second["data"]["id"]) < ids.index(first["data"]["id"])
        assert body["pagination"]["totalUsers"] == 3
        assert all("password" not in u and "hashed_password" not in u for u in body["data"])

    def test_pagination(self, client, admin):
        for i in range(4):
            register(client, username=f"paged{i}")
        response = client.get("/api/users?page=2&limit=2", headers=bearer(admin["accessToken"]))
        pagination = response.json()["pagination"]
        assert len(response.json()["data"]) == 2
        assert pagination == {
            "currentPage": 2,
            "totalPages": 3,
            "totalUsers": 5,
            "hasNextPage": True,
            "hasPrevPage": True,
        }

    def test_keyword_search_is_case_insensitive(self, client, admin):
        register(client, username="Zebra_fan", name="Zed")
        register(client, username="lion_fan")
        response = client.get("/api/users?keyword=zEBRA", headers=bearer(admin["accessToken"]))
        body = response.json()
        assert [u["username"] for u in body["data"]] == ["Zebra_fan"]
        assert body["pagination"]["totalUsers"] == 1

    def test_keyword_with_regex_characters(self, client, admin):
        response = client.get("/api/users?keyword=.*", headers=bearer(admin["accessToken"]))
        assert response.status_code == 200
        assert response.json()["data"] == []


class TestStatusChange:

    def test_admin_bans_user(self, client, admin, user, account_store):
        response = client.patch(
            f"/api/users/{user['data']['id']}/status",
            json={"status": "banned"},
            headers=bearer(admin["accessToken"]),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "banned"
        stored = account_store.accounts[user["data"]["id"]]
        assert stored.status == "banned"
        assert stored.refresh_token is None

    def test_banned_user_refresh_fails(self, client, admin, user):
        client.patch(
            f"/api/users/{user['data']['id']}/status",
            json={"status": "banned"},
            headers=bearer(admin["accessToken"]),
        )
        response = client.post("/api/auth/refresh-token", json={"refreshToken": user["refreshToken"]})
        assert response.status_code == 401

    def test_inactive_keeps_session(self, client, admin, user, account_store):
        client.patch(
            f"/api/users/{user['data']['id']}/status",
            json={"status": "inactive"},
            headers=bearer(admin["accessToken"]),
        )
        assert account_store.accounts[user["data"]["id"]].refresh_token == user["refreshToken"]

    def test_unknown_status_is_bad_request(self, client, admin, user):
        response = client.patch(
            f"/api/users/{user['data']['id']}/status",
            json={"status": "deleted"},
            headers=bearer(admin["accessToken"]),
        )
        assert response.status_code == 400

    def test_unknown_account(self, client, admin):
        response = client.patch(
            "/api/users/does-not-exist/status",
            json={"status": "active"},
            headers=bearer(admin["accessToken"]),
        )
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    def test_non_admin_cannot_change_status(self, client, user):
        other = register(client)
        response = client.patch(
            f"/api/users/{other['data']['id']}/status",
            json={"status": "banned"},
            headers=bearer(user["accessToken"]),
        )
        assert response.status_code == 403


class TestProfileUpdate:

    def test_update_own_profile(self, client, user):
        response = client.put(
            "/api/users/profile",
            json={"name": "  Renamed ", "email": "NEW@Example.com"},
            headers=bearer(user["accessToken"]),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["email"] == "new@example.com"
        assert data["surname"] == user["data"]["surname"]

    def test_username_taken(self, client, user):
        register(client, username="someone")
        response = client.put(
            "/api/users/profile",
            json={"username": "someone"},
            headers=bearer(user["accessToken"]),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"

    def test_email_taken(self, client, user):
        register(client, email="used@example.com")
        response = client.put(
            "/api/users/profile",
            json={"email": "used@example.com"},
            headers=bearer(user["accessToken"]),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already exists"

    def test_keeping_own_username_is_fine(self, client, user):
        response = client.put(
            "/api/users/profile",
            json={"username": user["data"]["username"]},
            headers=bearer(user["accessToken"]),
        )
        assert response.status_code == 200

    def test_requires_authentication(self, client):
        assert client.put("/api/users/profile", json={"name": "x"}).status_code == 401
