"""Tests for user, role and permission administration, including system-entity protection."""

import unittest

from app.core.exceptions import (
    DuplicateNameError,
    EmailInUseError,
    PermissionNotFoundError,
    RoleNotFoundError,
    SystemEntityProtectedError,
    UserNotFoundError,
)
from app.core.security import TokenCodec
from app.services import permissions as permission_service
from app.services import roles as role_service
from app.services import users as user_service
from app.services.credential_store import CredentialStore
from app.services.identity import IdentityService
from app.services.permissions import (
    ACCESS_SWAGGER,
    READ_USER,
    SEED_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from app.services.seeding import READ_ONLY_PERMISSIONS, ensure_admin, seed_rbac
from tests.support import RecordingNotifier, add_user, make_session, make_settings


class AdminTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session()
        self.store = CredentialStore(self.session)
        self.settings = make_settings()
        self.roles = seed_rbac(self.store, self.settings)

    def tearDown(self) -> None:
        self.session.close()


class TestRoleService(AdminTestCase):
    def test_delete_system_role_is_protected(self) -> None:
        admin_id = self.roles["ADMIN"].id
        with self.assertRaises(SystemEntityProtectedError) as ctx:
            role_service.delete_role(self.store, admin_id, self.settings)
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertIsNotNone(self.store.get_role(admin_id))

    def test_delete_custom_role(self) -> None:
        role = role_service.create_role(self.store, "AUDITOR", "Read-only auditor")
        role_id = role.id
        role_service.delete_role(self.store, role_id, self.settings)
        with self.assertRaises(RoleNotFoundError):
            role_service.get_role(self.store, role_id)

    def test_duplicate_names(self) -> None:
        with self.assertRaises(DuplicateNameError):
            role_service.create_role(self.store, "STAFF")
        auditor = role_service.create_role(self.store, "AUDITOR")
        with self.assertRaises(DuplicateNameError):
            role_service.update_role(self.store, auditor.id, name="STAFF")

    def test_system_role_may_be_edited(self) -> None:
        staff = role_service.update_role(
            self.store, self.roles["STAFF"].id, description="Front desk"
        )
        self.assertEqual(staff.description, "Front desk")
        self.assertEqual(staff.name, "STAFF")

    def test_update_without_changes_returns_role(self) -> None:
        role = role_service.update_role(self.store, self.roles["STAFF"].id, name="STAFF")
        self.assertEqual(role.name, "STAFF")

    def test_assignment_with_unknown_permission_is_all_or_nothing(self) -> None:
        role = role_service.create_role(self.store, "AUDITOR")
        read_user = self.store.get_permission_by_name(READ_USER)
        role_service.assign_permissions_to_role(self.store, role.id, [read_user.id])

        with self.assertRaises(PermissionNotFoundError):
            role_service.assign_permissions_to_role(self.store, role.id, [read_user.id, 9999])

        names = [p.name for p in role_service.get_role_permissions(self.store, role.id)]
        self.assertEqual(names, [READ_USER])

    def test_get_permissions_of_missing_role(self) -> None:
        with self.assertRaises(RoleNotFoundError):
            role_service.get_role_permissions(self.store, 9999)


class TestPermissionService(AdminTestCase):
    def test_system_permissions_are_the_seeded_names(self) -> None:
        self.assertEqual(len(SYSTEM_PERMISSIONS), 13)
        self.assertEqual(SYSTEM_PERMISSIONS, frozenset(SEED_PERMISSIONS))

    def test_delete_system_permission_is_protected(self) -> None:
        read_user = self.store.get_permission_by_name(READ_USER)
        with self.assertRaises(SystemEntityProtectedError):
            permission_service.delete_permission(self.store, read_user.id)
        self.assertIsNotNone(self.store.get_permission(read_user.id))

    def test_custom_permission_lifecycle(self) -> None:
        permission = permission_service.create_permission(self.store, "EXPORT_REPORTS")
        permission_id = permission.id
        with self.assertRaises(DuplicateNameError):
            permission_service.create_permission(self.store, "EXPORT_REPORTS")
        renamed = permission_service.update_permission(
            self.store, permission_id, name="EXPORT_DATA", description="Bulk export"
        )
        self.assertEqual(renamed.name, "EXPORT_DATA")
        permission_service.delete_permission(self.store, permission_id)
        with self.assertRaises(PermissionNotFoundError):
            permission_service.get_permission(self.store, permission_id)

    def test_list_is_sorted_by_name(self) -> None:
        names = [p.name for p in permission_service.list_permissions(self.store)]
        self.assertEqual(names, sorted(names))


class TestUserService(AdminTestCase):
    def test_update_email_collision(self) -> None:
        add_user(self.store, "a@x.com")
        other = add_user(self.store, "b@x.com")
        with self.assertRaises(EmailInUseError):
            user_service.update_user(self.store, other.id, email="a@x.com")

    def test_update_own_email_and_names(self) -> None:
        user = add_user(self.store, "a@x.com")
        updated = user_service.update_user(
            self.store, user.id, email="a@x.com", first_name="New", last_name="Name"
        )
        self.assertEqual((updated.first_name, updated.last_name), ("New", "Name"))

    def test_list_users_page_metadata(self) -> None:
        for i in range(3):
            add_user(self.store, f"user{i}@x.com")
        page = user_service.list_users(self.store, page=1, limit=2)
        self.assertEqual(len(page.users), 2)
        self.assertEqual(page.total, 3)
        self.assertEqual(page.total_pages, 2)

    def test_missing_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            user_service.get_user(self.store, "missing")
        with self.assertRaises(UserNotFoundError):
            user_service.delete_user(self.store, "missing")
        with self.assertRaises(UserNotFoundError):
            user_service.get_user_roles(self.store, "missing")

    def test_assign_roles(self) -> None:
        user = add_user(self.store, "a@x.com", roles=("STAFF",))
        count = user_service.assign_roles_to_user(
            self.store, user.id, [self.roles["ADMIN"].id, self.roles["DEVELOPER"].id]
        )
        self.assertEqual(count, 2)
        names = [r.name for r in user_service.get_user_roles(self.store, user.id)]
        self.assertEqual(names, ["ADMIN", "DEVELOPER"])


class TestSeeding(AdminTestCase):
    def test_seed_is_idempotent(self) -> None:
        seed_rbac(self.store, self.settings)
        self.assertEqual(len(self.store.list_roles()), 3)
        self.assertEqual(len(self.store.list_permissions()), 13)

    def test_seed_restores_grants(self) -> None:
        staff = self.roles["STAFF"]
        self.store.assign_permissions(staff.id, [])
        seed_rbac(self.store, self.settings)
        names = {p.name for p in self.store.role_permissions(staff.id)}
        self.assertEqual(names, set(READ_ONLY_PERMISSIONS))

    def test_ensure_admin(self) -> None:
        admin = ensure_admin(self.store, self.settings, email="root@x.com", password="Abc12345!")
        self.assertTrue(admin.is_email_verified)
        self.assertEqual([r.name for r in self.store.roles_of(admin.id)], ["ADMIN"])
        again = ensure_admin(self.store, self.settings, email="root@x.com", password="Other123!")
        self.assertEqual(again.id, admin.id)


class TestConfiguredRoleNames(unittest.TestCase):
    """Seeding, registration and role protection follow the role names in Settings."""

    def setUp(self) -> None:
        self.session = make_session()
        self.store = CredentialStore(self.session)
        self.settings = make_settings(
            ADMIN_ROLE_NAME="OWNER",
            DEFAULT_ROLE_NAME="MEMBER",
            DOCS_ROLE_NAME="DEV",
            SYSTEM_ROLE_NAMES=("OWNER", "MEMBER", "DEV"),
        )
        self.roles = seed_rbac(self.store, self.settings)

    def tearDown(self) -> None:
        self.session.close()

    def test_seeds_configured_names_only(self) -> None:
        self.assertEqual(set(self.roles), {"OWNER", "MEMBER", "DEV"})
        self.assertIsNone(self.store.get_role_by_name("ADMIN"))
        owner = {p.name for p in self.store.role_permissions(self.roles["OWNER"].id)}
        self.assertEqual(owner, set(SEED_PERMISSIONS))
        dev = {p.name for p in self.store.role_permissions(self.roles["DEV"].id)}
        self.assertIn(ACCESS_SWAGGER, dev)

    def test_registration_gets_configured_default_role(self) -> None:
        service = IdentityService(
            self.store, TokenCodec(self.settings), RecordingNotifier(), self.settings
        )
        result = service.register(
            email="a@x.com", password="Abc12345!", first_name="A", last_name="B"
        )
        self.assertEqual([r.name for r in self.store.roles_of(result.user.id)], ["MEMBER"])

    def test_configured_admin_role_is_protected(self) -> None:
        owner_id = self.roles["OWNER"].id
        with self.assertRaises(SystemEntityProtectedError):
            role_service.delete_role(self.store, owner_id, self.settings)
        self.assertIsNotNone(self.store.get_role(owner_id))

    def test_seeded_roles_protected_even_when_not_listed(self) -> None:
        settings = make_settings(
            ADMIN_ROLE_NAME="OWNER",
            DEFAULT_ROLE_NAME="MEMBER",
            DOCS_ROLE_NAME="DEV",
            SYSTEM_ROLE_NAMES=("AUDITOR",),
        )
        with self.assertRaises(SystemEntityProtectedError):
            role_service.delete_role(self.store, self.roles["OWNER"].id, settings)

    def test_coinciding_names_merge_grants(self) -> None:
        settings = make_settings(DEFAULT_ROLE_NAME="TEAM", DOCS_ROLE_NAME="TEAM")
        roles = seed_rbac(self.store, settings)
        team = {p.name for p in self.store.role_permissions(roles["TEAM"].id)}
        self.assertEqual(team, set(READ_ONLY_PERMISSIONS) | {ACCESS_SWAGGER})


if __name__ == "__main__":
    unittest.main()
