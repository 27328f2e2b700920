import pytest

from crm_backend.models import UserRole


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


class TestAuthentication:
    def test_missing_identity_is_401(self, client):
        assert client.get("/users/whoever").status_code == 401

    def test_unknown_user_is_401(self, client):
        assert client.get("/users/whoever", headers={"X-User-Id": "ghost"}).status_code == 401

    def test_inactive_user_is_401(self, client, make_user, headers):
        user = make_user(is_active=False)
        assert client.get(f"/users/{user.id}", headers=headers(user)).status_code == 401

    def test_session_cookie_is_accepted(self, client, make_user):
        user = make_user()
        response = client.get(f"/users/{user.id}", headers={"Cookie": f"session_user_id={user.id}"})
        assert response.status_code == 200

    def test_token_version_mismatch_is_401(self, client, make_user):
        user = make_user()
        response = client.get(
            f"/users/{user.id}",
            headers={"X-User-Id": user.id, "X-Token-Version": "7"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired or revoked"

    def test_revoke_sessions_invalidates_old_version(self, client, admin, make_user, headers):
        user = make_user()
        old = {"X-User-Id": user.id, "X-Token-Version": "1"}
        assert client.get(f"/users/{user.id}", headers=old).status_code == 200

        revoked = client.post(f"/users/{user.id}/revoke-sessions", headers=headers(admin))
        assert revoked.status_code == 200
        assert revoked.json()["tokenVersion"] == 2

        assert client.get(f"/users/{user.id}", headers=old).status_code == 401
        assert client.get(
            f"/users/{user.id}", headers={"X-User-Id": user.id, "X-Token-Version": "2"}
        ).status_code == 200


class TestUserRoutes:
    def test_admin_creates_user(self, client, admin, make_website, headers):
        site = make_website()
        response = client.post(
            "/users",
            json={
                "email": "New.Agent@Example.com",
                "fullName": "New Agent",
                "role": "agent",
                "websiteId": site.id,
                "panels": ["Panel A", " "],
            },
            headers=headers(admin),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "new.agent@example.com"
        assert body["panels"] == ["Panel A"]
        assert body["tokenVersion"] == 1

    def test_duplicate_email_is_400(self, client, admin, headers):
        payload = {"email": "dup@example.com", "fullName": "Dup"}
        assert client.post("/users", json=payload, headers=headers(admin)).status_code == 201
        assert client.post("/users", json=payload, headers=headers(admin)).status_code == 400

    def test_agent_cannot_create_or_list(self, client, make_user, headers):
        agent = make_user(role=UserRole.AGENT)
        payload = {"email": "x@example.com", "fullName": "X"}
        assert client.post("/users", json=payload, headers=headers(agent)).status_code == 403
        assert client.get("/users", headers=headers(agent)).status_code == 403

    def test_manager_can_list(self, client, admin, make_user, headers):
        manager = make_user(role=UserRole.MANAGER)
        emails = {u["email"] for u in client.get("/users", headers=headers(manager)).json()}
        assert {admin.email, manager.email} <= emails

    def test_patch_user(self, client, admin, make_user, headers):
        user = make_user(panels=["Panel A"])
        response = client.patch(
            f"/users/{user.id}",
            json={"panels": ["Panel B"], "role": "retention_manager"},
            headers=headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["panels"] == ["Panel B"]
        assert response.json()["role"] == "retention_manager"

    def test_unknown_user_is_404(self, client, admin, headers):
        assert client.get("/users/missing", headers=headers(admin)).status_code == 404
        assert client.patch("/users/missing", json={}, headers=headers(admin)).status_code == 404


class TestWebsiteRoutes:
    def test_create_and_fetch(self, client, admin, headers):
        created = client.post(
            "/websites",
            json={"name": "Lucky", "url": "lucky.example.com"},
            headers=headers(admin),
        )
        assert created.status_code == 201
        website_id = created.json()["id"]

        assert client.get(f"/websites/{website_id}").json()["url"] == "lucky.example.com"
        assert [w["name"] for w in client.get("/websites").json()] == ["Lucky"]
        assert client.get("/websites/missing").status_code == 404

    def test_only_admin_creates(self, client, make_user, headers):
        manager = make_user(role=UserRole.MANAGER)
        response = client.post("/websites", json={"name": "X", "url": "x"}, headers=headers(manager))
        assert response.status_code == 403


def test_healthz(client):
    assert client.get("/healthz").json()["status"] == "ok"
