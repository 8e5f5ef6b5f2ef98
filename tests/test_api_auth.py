"""
HTTP tests for signup, approval-gated login and the admin portal.
"""

from dataclasses import replace
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from main import create_app
from user_service import PENDING_APPROVAL_MESSAGE
from utils import create_access_token


def signup_payload(**overrides):
    payload = {
        "firstName": "Ana",
        "lastName": "Silva",
        "email": "Ana.Silva@Example.com",
        "password": "Secret123",
        "confirmPassword": "Secret123",
        "agreeToTerms": True,
    }
    payload.update(overrides)
    return payload


class TestSignup:

    async def test_signup_creates_pending_user_without_token(self, client, db):
        response = await client.post("/auth/signup", json=signup_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "token" not in body
        assert body["user"]["email"] == "ana.silva@example.com"
        assert body["user"]["isApproved"] is False
        assert "password" not in body["user"]

        stored = await db.users.find_one({"email": "ana.silva@example.com"})
        assert stored["password"] != "Secret123"

    async def test_duplicate_email_conflicts(self, client):
        await client.post("/auth/signup", json=signup_payload())

        response = await client.post("/auth/signup", json=signup_payload(email="ana.silva@example.com"))

        assert response.status_code == 409
        assert response.json()["success"] is False

    @pytest.mark.parametrize(
        "overrides, fragment",
        [
            ({"confirmPassword": "Secret124"}, "Passwords do not match"),
            ({"agreeToTerms": False}, "terms and conditions"),
            ({"password": "short1A", "confirmPassword": "short1A"}, "at least 8 characters"),
            ({"password": "alllowercase1", "confirmPassword": "alllowercase1"}, "uppercase"),
            ({"email": "not-an-email"}, "email"),
        ],
    )
    async def test_invalid_signup_is_400(self, client, overrides, fragment):
        response = await client.post("/auth/signup", json=signup_payload(**overrides))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert fragment in body["message"]


class TestLogin:

    async def test_pending_user_cannot_login_until_approved(self, client, make_user, auth_headers):
        admin = await make_user("Root", "Admin", admin=True)
        await client.post("/auth/signup", json=signup_payload())
        credentials = {"email": "ana.silva@example.com", "password": "Secret123"}

        blocked = await client.post("/auth/login", json=credentials)
        assert blocked.status_code == 403
        assert blocked.json()["message"] == PENDING_APPROVAL_MESSAGE

        pending = await client.get("/admin/users?status=pending", headers=auth_headers(admin))
        [user] = pending.json()["users"]
        approved = await client.post(
            f"/admin/users/{user['id']}/approve", json={"action": "approve"}, headers=auth_headers(admin)
        )
        assert approved.status_code == 200

        response = await client.post("/auth/login", json=credentials)
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["isApproved"] is True

        books = await client.get(
            "/user/books", headers={"Authorization": f"Bearer {body['token']}"}
        )
        assert books.status_code == 200

    async def test_wrong_password_and_unknown_email_look_the_same(self, client, make_user):
        await make_user(email="reader@example.com")

        wrong = await client.post("/auth/login", json={"email": "reader@example.com", "password": "Wrong123"})
        unknown = await client.post("/auth/login", json={"email": "ghost@example.com", "password": "Wrong123"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"

    async def test_admin_must_use_admin_portal(self, client, make_user):
        await make_user(email="boss@example.com", admin=True)

        response = await client.post("/auth/login", json={"email": "boss@example.com", "password": "Passw0rd!"})

        assert response.status_code == 403


class TestAdminLogin:

    async def test_admin_login_with_code(self, client, make_user):
        await make_user(email="boss@example.com", admin=True)

        response = await client.post(
            "/auth/admin",
            json={"email": "boss@example.com", "password": "Passw0rd!", "adminCode": "TEST-ADMIN"},
        )

        assert response.status_code == 200
        assert response.json()["user"]["isAdmin"] is True
        assert response.json()["token"]

    async def test_wrong_admin_code(self, client, make_user):
        await make_user(email="boss@example.com", admin=True)

        response = await client.post(
            "/auth/admin",
            json={"email": "boss@example.com", "password": "Passw0rd!", "adminCode": "WRONG-CODE"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid admin code"

    async def test_regular_user_is_refused(self, client, make_user):
        await make_user(email="reader@example.com")

        response = await client.post(
            "/auth/admin",
            json={"email": "reader@example.com", "password": "Passw0rd!", "adminCode": "TEST-ADMIN"},
        )

        assert response.status_code == 403


class TestTokens:

    async def test_missing_token(self, client):
        response = await client.get("/user/books")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Access token required"}

    async def test_garbage_token(self, client):
        response = await client.get("/user/books", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 403

    async def test_expired_token(self, client, make_user, settings):
        user = await make_user()
        token = create_access_token(
            {"id": user["id"], "email": user["email"], "isAdmin": False},
            settings,
            expires_delta=timedelta(seconds=-10),
        )

        response = await client.get("/user/books", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid or expired token"

    async def test_token_of_deleted_user(self, client, db, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        await db.users.delete_one({"_id": user["_id"]})

        response = await client.get("/user/books", headers=headers)

        assert response.status_code == 404

    async def test_non_admin_cannot_reach_admin_endpoints(self, client, make_user, auth_headers):
        user = await make_user()

        for method, path in (
            ("GET", "/admin/users"),
            ("GET", "/admin/dashboard"),
            ("DELETE", f"/admin/users/{user['id']}"),
        ):
            response = await client.request(method, path, headers=auth_headers(user))
            assert response.status_code == 403
            assert response.json()["message"] == "Admin access required"


class TestInit:

    async def test_init_without_configured_admin(self, client):
        response = await client.post("/auth/init")

        assert response.status_code == 200
        assert response.json()["adminConfigured"] is False

    async def test_init_seeds_admin_once(self, settings, db, image_store):
        seeded = replace(settings, default_admin_email="Seed@Example.com", default_admin_password="Seed1234")
        app = create_app(seeded, db=db, image_store=image_store)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            first = await ac.post("/auth/init")
            second = await ac.post("/auth/init")

        assert first.json()["adminConfigured"] is True
        assert second.json()["adminConfigured"] is True
        assert await db.users.count_documents({"email": "seed@example.com", "isAdmin": True}) == 1
