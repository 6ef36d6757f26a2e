"""HTTP tests for the auth endpoints, envelope, and bearer-token dependencies."""

import shutil
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import jwt
from fastapi.testclient import TestClient

from app.core.errors import UserNotFound
from app.core.security import TokenIssuer
from app.models import User
from app.services.auth import AuthService
from tests.support import (
    ACCESS_SECRET,
    REFRESH_SECRET,
    make_client,
    make_session_factory,
    make_settings,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.media_root = tempfile.mkdtemp()
        self.settings = make_settings(MEDIA_ROOT=self.media_root)
        self.session_factory = make_session_factory()
        self.client = make_client(self.settings, self.session_factory)

    def tearDown(self) -> None:
        self.client.close()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def _register(self, email: str = "a@x.com", password: str = "secret1", name: str = "A") -> dict:
        response = self.client.post(
            "/api/auth/register", json={"email": email, "password": password, "name": name}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def _auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def _set_role(self, user_id: int, role: str) -> None:
        db = self.session_factory()
        try:
            db.get(User, user_id).role = role
            db.commit()
        finally:
            db.close()


class TestRegisterLoginScenario(ApiTestCase):
    def test_register_then_login(self) -> None:
        data = self._register()
        self.assertEqual(data["user"]["email"], "a@x.com")
        self.assertNotIn("password", data["user"])
        self.assertNotIn("passwordHash", data["user"])
        self.assertNotIn("refreshToken", data["user"])
        claims = jwt.decode(data["accessToken"], ACCESS_SECRET, algorithms=["HS256"])
        self.assertEqual(claims["role"], "user")

        wrong = self.client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(
            wrong.json(), {"success": False, "message": "Invalid email or password"}
        )

        ok = self.client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
        self.assertEqual(ok.status_code, 200)
        body = ok.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Login successful")
        self.assertNotEqual(body["data"]["refreshToken"], data["refreshToken"])

    def test_unknown_email_same_response_as_wrong_password(self) -> None:
        self._register()
        wrong = self.client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
        unknown = self.client.post("/api/auth/login", json={"email": "b@x.com", "password": "secret1"})
        self.assertEqual(wrong.status_code, unknown.status_code)
        self.assertEqual(wrong.json(), unknown.json())

    def test_duplicate_registration(self) -> None:
        self._register()
        response = self.client.post(
            "/api/auth/register", json={"email": "a@x.com", "password": "secret1", "name": "B"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Email already exists")

    def test_validation_errors_use_envelope(self) -> None:
        response = self.client.post("/api/auth/register", json={"email": "a@x.com"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "Validation error")
        fields = {e["field"] for e in body["errors"]}
        self.assertIn("password", fields)
        self.assertIn("name", fields)

        response = self.client.post(
            "/api/auth/register", json={"email": "not-an-email", "password": "secret1", "name": "A"}
        )
        self.assertEqual(response.status_code, 400)


class TestRefreshAndLogout(ApiTestCase):
    def test_refresh_then_logout_revokes(self) -> None:
        data = self._register()
        refreshed = self.client.post(
            "/api/auth/refresh-token", json={"refreshToken": data["refreshToken"]}
        )
        self.assertEqual(refreshed.status_code, 200)
        self.assertIn("accessToken", refreshed.json()["data"])

        logout = self.client.post("/api/auth/logout", headers=self._auth(data["accessToken"]))
        self.assertEqual(logout.status_code, 200)
        self.assertEqual(logout.json()["message"], "Logged out successfully")

        again = self.client.post(
            "/api/auth/refresh-token", json={"refreshToken": data["refreshToken"]}
        )
        self.assertEqual(again.status_code, 401)
        self.assertEqual(again.json()["message"], "Invalid refresh token")

    def test_refresh_requires_body(self) -> None:
        response = self.client.post("/api/auth/refresh-token", json={})
        self.assertEqual(response.status_code, 400)


class TestRequireAuth(ApiTestCase):
    def test_missing_header(self) -> None:
        response = self.client.get("/api/auth/profile")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "No token provided")

    def test_malformed_header(self) -> None:
        token = self._register()["accessToken"]
        for header in (token, f"Token {token}", f"bearer {token}"):
            response = self.client.get("/api/auth/profile", headers={"Authorization": header})
            self.assertEqual(response.status_code, 401, header)
            self.assertEqual(response.json()["message"], "No token provided")

    def test_invalid_token(self) -> None:
        response = self.client.get("/api/auth/profile", headers=self._auth("garbage"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_expired_token(self) -> None:
        user_id = self._register()["user"]["id"]
        expired = TokenIssuer(
            access_secret=ACCESS_SECRET,
            refresh_secret=REFRESH_SECRET,
            access_ttl=timedelta(seconds=-1),
        ).issue_access_token(type("U", (), {"id": user_id, "email": "a@x.com", "role": "user"}))
        response = self.client.get("/api/auth/profile", headers=self._auth(expired))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Token expired")

    def test_refresh_token_is_not_accepted_as_access_token(self) -> None:
        data = self._register()
        response = self.client.get("/api/auth/profile", headers=self._auth(data["refreshToken"]))
        self.assertEqual(response.status_code, 401)


class TestOptionalAuth(ApiTestCase):
    def test_root_is_anonymous_without_or_with_bad_token(self) -> None:
        self.assertIsNone(self.client.get("/").json()["user"])
        self.assertIsNone(self.client.get("/", headers=self._auth("garbage")).json()["user"])

    def test_root_echoes_identity(self) -> None:
        data = self._register()
        body = self.client.get("/", headers=self._auth(data["accessToken"])).json()
        self.assertEqual(body["user"]["email"], "a@x.com")


class TestProfileEndpoints(ApiTestCase):
    def test_get_and_update_profile(self) -> None:
        token = self._register()["accessToken"]
        profile = self.client.get("/api/auth/profile", headers=self._auth(token))
        self.assertEqual(profile.status_code, 200)
        self.assertEqual(profile.json()["data"]["name"], "A")
        self.assertTrue(profile.json()["data"]["isActive"])

        updated = self.client.put(
            "/api/auth/profile", json={"name": "Alice"}, headers=self._auth(token)
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["name"], "Alice")
        self.assertEqual(updated.json()["data"]["email"], "a@x.com")

    def test_blank_name_rejected(self) -> None:
        token = self._register()["accessToken"]
        response = self.client.put(
            "/api/auth/profile", json={"name": "   "}, headers=self._auth(token)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Validation error")
        profile = self.client.get("/api/auth/profile", headers=self._auth(token)).json()
        self.assertEqual(profile["data"]["name"], "A")

    def test_name_is_trimmed(self) -> None:
        token = self._register()["accessToken"]
        response = self.client.put(
            "/api/auth/profile", json={"name": "  Alice "}, headers=self._auth(token)
        )
        self.assertEqual(response.json()["data"]["name"], "Alice")

    def test_update_email_taken(self) -> None:
        self._register()
        token = self._register(email="b@x.com")["accessToken"]
        response = self.client.put(
            "/api/auth/profile", json={"email": "a@x.com"}, headers=self._auth(token)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Email already exists")

    def test_change_password(self) -> None:
        token = self._register()["accessToken"]
        short = self.client.put(
            "/api/auth/change-password",
            json={"oldPassword": "secret1", "newPassword": "123"},
            headers=self._auth(token),
        )
        self.assertEqual(short.status_code, 400)

        wrong = self.client.put(
            "/api/auth/change-password",
            json={"oldPassword": "nope", "newPassword": "newsecret"},
            headers=self._auth(token),
        )
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(wrong.json()["message"], "Current password is incorrect")

        ok = self.client.put(
            "/api/auth/change-password",
            json={"oldPassword": "secret1", "newPassword": "newsecret"},
            headers=self._auth(token),
        )
        self.assertEqual(ok.status_code, 200)
        login = self.client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "newsecret"}
        )
        self.assertEqual(login.status_code, 200)

    def test_profile_of_deleted_user(self) -> None:
        data = self._register()
        db = self.session_factory()
        try:
            db.delete(db.get(User, data["user"]["id"]))
            db.commit()
        finally:
            db.close()
        response = self.client.get("/api/auth/profile", headers=self._auth(data["accessToken"]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "User not found")


class TestProfileImage(ApiTestCase):
    def _upload(self, token: str, filename: str = "me.png", content: bytes = PNG_BYTES,
                content_type: str = "image/png"):
        return self.client.post(
            "/api/auth/upload-image",
            files={"image": (filename, content, content_type)},
            headers=self._auth(token),
        )

    def test_upload_replace_and_delete(self) -> None:
        token = self._register()["accessToken"]
        first = self._upload(token)
        self.assertEqual(first.status_code, 200, first.text)
        first_path = first.json()["data"]["user"]["image"]
        self.assertTrue(first_path.startswith("images/users/user_"))
        self.assertTrue(first.json()["data"]["imageUrl"].endswith(first_path))
        self.assertTrue((Path(self.media_root) / first_path).is_file())

        served = self.client.get(f"/{first_path}")
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, PNG_BYTES)

        second = self._upload(token, filename="me2.jpg", content_type="image/jpeg")
        self.assertEqual(second.status_code, 200)
        second_path = second.json()["data"]["user"]["image"]
        self.assertNotEqual(first_path, second_path)
        self.assertFalse((Path(self.media_root) / first_path).exists())

        deleted = self.client.delete("/api/auth/delete-image", headers=self._auth(token))
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json()["message"], "Profile image deleted successfully")
        self.assertFalse((Path(self.media_root) / second_path).exists())

        profile = self.client.get("/api/auth/profile", headers=self._auth(token)).json()
        self.assertIsNone(profile["data"]["image"])

    def test_delete_keeps_file_when_row_update_fails(self) -> None:
        token = self._register()["accessToken"]
        path = self._upload(token).json()["data"]["user"]["image"]
        with patch.object(AuthService, "update_image", side_effect=UserNotFound()):
            response = self.client.delete("/api/auth/delete-image", headers=self._auth(token))
        self.assertEqual(response.status_code, 404)
        self.assertTrue((Path(self.media_root) / path).is_file())
        profile = self.client.get("/api/auth/profile", headers=self._auth(token)).json()
        self.assertEqual(profile["data"]["image"], path)

    def test_delete_without_image(self) -> None:
        token = self._register()["accessToken"]
        response = self.client.delete("/api/auth/delete-image", headers=self._auth(token))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "No profile image to delete")

    def test_rejects_non_image(self) -> None:
        token = self._register()["accessToken"]
        response = self._upload(token, filename="notes.txt", content=b"hi", content_type="text/plain")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Only image files are allowed", response.json()["message"])

    def test_rejects_oversize(self) -> None:
        self.client.close()
        self.client = make_client(
            make_settings(MEDIA_ROOT=self.media_root, MAX_IMAGE_BYTES=16),
            self.session_factory,
        )
        token = self._register()["accessToken"]
        response = self._upload(token)
        self.assertEqual(response.status_code, 400)
        self.assertIn("File is too large", response.json()["message"])
        self.assertFalse(any((Path(self.media_root) / "images" / "users").glob("*")))

    def test_missing_file(self) -> None:
        token = self._register()["accessToken"]
        response = self.client.post(
            "/api/auth/upload-image", data={"other": "x"}, headers=self._auth(token)
        )
        self.assertEqual(response.status_code, 400)

    def test_requires_auth(self) -> None:
        response = self.client.post(
            "/api/auth/upload-image", files={"image": ("me.png", PNG_BYTES, "image/png")}
        )
        self.assertEqual(response.status_code, 401)


class TestAdminListing(ApiTestCase):
    def test_non_admin_forbidden(self) -> None:
        token = self._register()["accessToken"]
        response = self.client.get("/api/auth/users", headers=self._auth(token))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Admin access required")

    def test_admin_role_takes_effect_on_next_login(self) -> None:
        data = self._register()
        self._register(email="b@x.com")
        self._set_role(data["user"]["id"], "admin")

        # Role is read from the token, so the old access token is still "user".
        stale = self.client.get("/api/auth/users", headers=self._auth(data["accessToken"]))
        self.assertEqual(stale.status_code, 403)

        token = self.client.post(
            "/api/auth/login", json={"email": "a@x.com", "password": "secret1"}
        ).json()["data"]["accessToken"]
        response = self.client.get(
            "/api/auth/users", params={"page": 1, "limit": 1}, headers=self._auth(token)
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()["data"]
        self.assertEqual(len(body["users"]), 1)
        self.assertEqual(body["pagination"]["total"], 2)
        self.assertTrue(body["pagination"]["hasNextPage"])
        self.assertNotIn("refreshToken", body["users"][0])


class TestMisc(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")

    def test_unhandled_error_is_access_logged(self) -> None:
        app = self.client.app

        def boom() -> None:
            raise RuntimeError("boom")

        app.add_api_route("/boom", boom)
        client = TestClient(app, raise_server_exceptions=False)
        with self.assertLogs("app.main", level="ERROR") as logs:
            response = client.get("/boom")
        client.close()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"success": False, "message": "Internal server error"}
        )
        self.assertTrue(any("GET /boom 500" in line for line in logs.output))

    def test_unknown_route(self) -> None:
        response = self.client.get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "Route not found"})


if __name__ == "__main__":
    unittest.main()
