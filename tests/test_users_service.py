"""Tests for UserService: admin creation with invitations, self-update allowlist, soft delete."""

import unittest

from app.core.errors import Conflict, Forbidden, NotFound
from app.models import RefreshToken, Role, User
from app.schemas.users import UserCreate, UserUpdate
from app.services.auth import AuthService
from app.services.users import UserService
from tests.support import TEST_ROUNDS, add_user, make_session_factory, make_token_service, principal


class UserServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session_factory()()
        self.service = UserService(self.session, password_rounds=TEST_ROUNDS)
        self.admin = add_user(self.session, "admin@x.com", role=Role.ADMIN)
        self.member = add_user(self.session, "member@x.com")

    def tearDown(self) -> None:
        self.session.close()


class TestCreateUser(UserServiceTestCase):
    def test_with_password_has_no_invitation(self) -> None:
        created = self.service.create_user(
            UserCreate(email="pm@x.com", password="Passw0rd", first_name="P", last_name="M", role=Role.PROJECT_MANAGER)
        )
        self.assertIsNone(created.temporary_password)
        self.assertEqual(created.user.role, Role.PROJECT_MANAGER)
        self.assertIsNone(self.session.get(User, created.user.id).default_password_hash)

    def test_without_password_issues_invitation(self) -> None:
        created = self.service.create_user(
            UserCreate(email="new@x.com", first_name="N", last_name="U", role=Role.PROJECT_MEMBER)
        )
        self.assertRegex(created.temporary_password, r"^[A-Za-z]+\d{4}$")
        user = self.session.get(User, created.user.id)
        self.assertIsNotNone(user.default_password_hash)
        self.assertIsNotNone(user.default_password_expires_at)

    def test_duplicate_email(self) -> None:
        with self.assertRaises(Conflict):
            self.service.create_user(
                UserCreate(email="member@x.com", password="Passw0rd", first_name="M", last_name="M", role=Role.ADMIN)
            )


class TestGetAndUpdateUser(UserServiceTestCase):
    def test_member_cannot_view_others(self) -> None:
        with self.assertRaises(Forbidden):
            self.service.get_user(self.admin.id, principal(self.member))
        self.assertEqual(self.service.get_user(self.member.id, principal(self.member)).email, "member@x.com")

    def test_missing_user(self) -> None:
        with self.assertRaises(NotFound):
            self.service.get_user(9999, principal(self.admin))

    def test_self_update_names(self) -> None:
        out = self.service.update_user(self.member.id, UserUpdate(first_name="Renamed"), principal(self.member))
        self.assertEqual(out.first_name, "Renamed")
        self.assertEqual(out.last_name, "Tester")

    def test_self_update_role_is_forbidden(self) -> None:
        with self.assertRaises(Forbidden) as ctx:
            self.service.update_user(self.member.id, UserUpdate(role=Role.ADMIN), principal(self.member))
        self.assertEqual(ctx.exception.message, "Cannot update restricted fields")
        self.assertEqual(self.session.get(User, self.member.id).role, Role.PROJECT_MEMBER)

    def test_self_update_ignores_null_restricted_fields(self) -> None:
        data = UserUpdate(first_name="Renamed", role=None)
        out = self.service.update_user(self.member.id, data, principal(self.member))
        self.assertEqual(out.first_name, "Renamed")
        self.assertEqual(out.role, Role.PROJECT_MEMBER)

    def test_cannot_update_other_user(self) -> None:
        with self.assertRaises(Forbidden):
            self.service.update_user(self.admin.id, UserUpdate(first_name="X"), principal(self.member))

    def test_admin_changes_role(self) -> None:
        out = self.service.update_user(self.member.id, UserUpdate(role=Role.PROJECT_MANAGER), principal(self.admin))
        self.assertEqual(out.role, Role.PROJECT_MANAGER)


class TestDeleteAndList(UserServiceTestCase):
    def test_soft_delete_revokes_sessions(self) -> None:
        auth = AuthService(self.session, make_token_service(), password_rounds=TEST_ROUNDS)
        auth.login("member@x.com", "Passw0rd")
        self.service.delete_user(self.member.id)
        user = self.session.get(User, self.member.id)
        self.assertFalse(user.is_active)
        self.assertEqual(self.session.query(RefreshToken).filter_by(user_id=user.id).count(), 0)

    def test_list_filters_and_meta(self) -> None:
        add_user(self.session, "other@x.com", is_active=False)
        users, meta = self.service.list_users(role=Role.PROJECT_MEMBER)
        self.assertEqual({u.email for u in users}, {"member@x.com", "other@x.com"})
        self.assertEqual(meta.total, 2)

        users, _ = self.service.list_users(is_active=False)
        self.assertEqual([u.email for u in users], ["other@x.com"])

        users, meta = self.service.list_users(search="ADMIN", page=1, limit=1)
        self.assertEqual([u.email for u in users], ["admin@x.com"])
        self.assertEqual((meta.limit, meta.total_pages), (1, 1))

    def test_list_sort(self) -> None:
        users, _ = self.service.list_users(sort="email")
        self.assertEqual([u.email for u in users], ["admin@x.com", "member@x.com"])


if __name__ == "__main__":
    unittest.main()
