"""HTTP-level tests: envelope, trace ids, auth dependencies and route role gates."""

import unittest
from typing import Annotated

from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.api.v1.auth import get_auth_service, get_token_service
from app.core.database import get_db
from app.main import app
from app.models import Role
from app.services.auth import AuthService
from app.services.token_service import TokenService
from tests.support import DEFAULT_PASSWORD, TEST_ROUNDS, add_user, make_session_factory, make_token_service

PREFIX = "/api/v1"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = make_session_factory()
        self.tokens = make_token_service()

        def override_get_db():
            db = self.session_factory()
            try:
                yield db
            finally:
                db.close()

        def override_auth_service(
            db: Annotated[Session, Depends(get_db)],
            tokens: Annotated[TokenService, Depends(get_token_service)],
        ) -> AuthService:
            return AuthService(db, tokens, password_rounds=TEST_ROUNDS)

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        app.dependency_overrides[get_auth_service] = override_auth_service
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _seed(self, email: str, role: Role = Role.PROJECT_MEMBER) -> int:
        session = self.session_factory()
        try:
            return add_user(session, email, role=role).id
        finally:
            session.close()

    def _login(self, email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["data"]

    def _bearer(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


class TestAuthRoutes(ApiTestCase):
    def test_register_then_me(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/register",
            json={"email": "a@x.com", "password": "Passw0rd", "first_name": "A", "last_name": "B"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["traceId"], response.headers["X-Trace-ID"])
        self.assertEqual(body["data"]["user"]["role"], "project_member")
        self.assertNotIn("password_hash", body["data"]["user"])

        me = self.client.get(f"{PREFIX}/auth/me", headers=self._bearer(body["data"]["access_token"]))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["email"], "a@x.com")

    def test_me_requires_token(self) -> None:
        response = self.client.get(f"{PREFIX}/auth/me")
        self.assertEqual(response.status_code, 401)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"]["code"], "UNAUTHORIZED")
        self.assertEqual(body["error"]["message"], "Access token required")
        self.assertIn("X-Trace-ID", response.headers)

    def test_me_rejects_refresh_token(self) -> None:
        self._seed("m@x.com")
        tokens = self._login("m@x.com")
        response = self.client.get(f"{PREFIX}/auth/me", headers=self._bearer(tokens["refresh_token"]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "Invalid access token")

    def test_login_failure_message(self) -> None:
        self._seed("m@x.com")
        for email in ("m@x.com", "nobody@x.com"):
            response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": "Wrong1234"})
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["error"]["message"], "Invalid email or password")

    def test_privileged_self_registration_needs_admin(self) -> None:
        payload = {
            "email": "boss@x.com",
            "password": "Passw0rd",
            "first_name": "B",
            "last_name": "Oss",
            "role": "admin",
        }
        response = self.client.post(f"{PREFIX}/auth/register", json=payload)
        self.assertEqual(response.status_code, 403)

        self._seed("root@x.com", role=Role.ADMIN)
        admin = self._login("root@x.com")
        response = self.client.post(
            f"{PREFIX}/auth/register", json=payload, headers=self._bearer(admin["access_token"])
        )
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["data"]["user"]["role"], "admin")

    def test_validation_error_envelope(self) -> None:
        response = self.client.post(
            f"{PREFIX}/auth/register",
            json={"email": "not-an-email", "password": "short", "first_name": "A", "last_name": "B"},
        )
        self.assertEqual(response.status_code, 422)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertEqual({d["field"] for d in error["details"]}, {"email", "password"})

    def test_refresh_rotation_and_reuse(self) -> None:
        self._seed("m@x.com")
        first = self._login("m@x.com")
        response = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": first["refresh_token"]})
        self.assertEqual(response.status_code, 200, response.text)
        second = response.json()["data"]
        self.assertNotEqual(second["refresh_token"], first["refresh_token"])

        reused = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": first["refresh_token"]})
        self.assertEqual(reused.status_code, 401)
        self.assertIn("all sessions revoked", reused.json()["error"]["message"])

        # The reuse revoked the rotated token as well.
        response = self.client.post(f"{PREFIX}/auth/refresh", json={"refresh_token": second["refresh_token"]})
        self.assertEqual(response.status_code, 401)

    def test_logout_always_succeeds(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/logout", json={"refresh_token": "garbage"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

    def test_reset_password_self_or_admin(self) -> None:
        member_id = self._seed("m@x.com")
        other_id = self._seed("o@x.com")
        member = self._login("m@x.com")
        response = self.client.post(
            f"{PREFIX}/auth/reset-password",
            json={"user_id": other_id, "new_password": "NewPassw0rd"},
            headers=self._bearer(member["access_token"]),
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.post(
            f"{PREFIX}/auth/reset-password",
            json={"user_id": member_id, "new_password": "NewPassw0rd"},
            headers=self._bearer(member["access_token"]),
        )
        self.assertEqual(response.status_code, 200, response.text)
        self._login("m@x.com", "NewPassw0rd")

    def test_trace_id_is_echoed(self) -> None:
        response = self.client.get(f"{PREFIX}/auth/me", headers={"X-Trace-ID": "trace-123"})
        self.assertEqual(response.headers["X-Trace-ID"], "trace-123")
        self.assertEqual(response.json()["traceId"], "trace-123")


class TestRoleGates(ApiTestCase):
    def test_member_cannot_create_client_or_list_users(self) -> None:
        self._seed("m@x.com")
        member = self._login("m@x.com")
        response = self.client.post(
            f"{PREFIX}/clients",
            json={"name": "Acme", "contact_person": "Jane", "contact_email": "jane@acme.com"},
            headers=self._bearer(member["access_token"]),
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "FORBIDDEN")
        response = self.client.get(f"{PREFIX}/users", headers=self._bearer(member["access_token"]))
        self.assertEqual(response.status_code, 403)

    def test_manager_creates_client_and_project(self) -> None:
        member_id = self._seed("m@x.com")
        self._seed("pm@x.com", role=Role.PROJECT_MANAGER)
        manager = self._login("pm@x.com")
        headers = self._bearer(manager["access_token"])

        client = self.client.post(
            f"{PREFIX}/clients",
            json={"name": "Acme", "contact_person": "Jane", "contact_email": "jane@acme.com"},
            headers=headers,
        )
        self.assertEqual(client.status_code, 201, client.text)
        project = self.client.post(
            f"{PREFIX}/projects",
            json={
                "name": "Launch",
                "channel": "Social",
                "client_id": client.json()["data"]["id"],
                "objectives": [{"title": "Reach", "kpi": "impressions", "target_value": 1000}],
                "team_members": [member_id],
            },
            headers=headers,
        )
        self.assertEqual(project.status_code, 201, project.text)

        member = self._login("m@x.com")
        listed = self.client.get(f"{PREFIX}/projects", headers=self._bearer(member["access_token"]))
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()["meta"]["total"], 1)

    def test_admin_lists_users_with_meta(self) -> None:
        self._seed("root@x.com", role=Role.ADMIN)
        self._seed("m@x.com")
        admin = self._login("root@x.com")
        response = self.client.get(f"{PREFIX}/users?limit=1", headers=self._bearer(admin["access_token"]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(len(body["data"]), 1)
        self.assertEqual(body["meta"], {"page": 1, "limit": 1, "total": 2, "total_pages": 2})


if __name__ == "__main__":
    unittest.main()
