"""Idempotent bootstrap of the system roles, permissions and their grants.

Role names come from Settings: ADMIN_ROLE_NAME gets every permission,
DEFAULT_ROLE_NAME the read-only set, DOCS_ROLE_NAME the read-only set plus
ACCESS_SWAGGER. Names may coincide; grants are then merged.
"""

import logging

from app.core.config import Settings
from app.core.security import hash_password
from app.models import Permission, Role, User
from app.services.credential_store import CredentialStore
from app.services.permissions import (
    ACCESS_SWAGGER,
    READ_PERMISSION,
    READ_ROLE,
    READ_USER,
    SEED_PERMISSIONS,
)

logger = logging.getLogger(__name__)

READ_ONLY_PERMISSIONS = (READ_USER, READ_ROLE, READ_PERMISSION)
DOCS_PERMISSIONS = READ_ONLY_PERMISSIONS + (ACCESS_SWAGGER,)


def seed_roles(settings: Settings) -> dict[str, tuple[str, tuple[str, ...]]]:
    """Role name -> (description, granted permission names) for the configured system roles."""
    plan: dict[str, tuple[str, tuple[str, ...]]] = {}

    def add(name: str, description: str, permissions: tuple[str, ...]) -> None:
        if name in plan:
            merged = plan[name][1] + tuple(p for p in permissions if p not in plan[name][1])
            plan[name] = (plan[name][0], merged)
        else:
            plan[name] = (description, permissions)

    add(settings.ADMIN_ROLE_NAME, "Administrator with full access", tuple(SEED_PERMISSIONS))
    add(settings.DEFAULT_ROLE_NAME, "Regular staff member", READ_ONLY_PERMISSIONS)
    add(
        settings.DOCS_ROLE_NAME,
        "Developer with read access and API documentation",
        DOCS_PERMISSIONS,
    )
    return plan


def _ensure_role(store: CredentialStore, name: str, description: str) -> Role:
    role = store.get_role_by_name(name)
    if role is None:
        role = store.create_role(name, description)
        logger.info("Seeded role: %s", name)
    return role


def _ensure_permission(store: CredentialStore, name: str, description: str) -> Permission:
    permission = store.get_permission_by_name(name)
    if permission is None:
        permission = store.create_permission(name, description)
        logger.info("Seeded permission: %s", name)
    return permission


def seed_rbac(store: CredentialStore, settings: Settings) -> dict[str, Role]:
    """
    Create any missing system role or permission and reset each system role's grants
    to the seeded set. Safe to run repeatedly. Returns the system roles by name.
    """
    permissions = {
        name: _ensure_permission(store, name, description)
        for name, description in SEED_PERMISSIONS.items()
    }
    roles: dict[str, Role] = {}
    for role_name, (description, permission_names) in seed_roles(settings).items():
        role = _ensure_role(store, role_name, description)
        store.assign_permissions(role.id, [permissions[name].id for name in permission_names])
        roles[role_name] = role
    return roles


def ensure_admin(
    store: CredentialStore,
    settings: Settings,
    *,
    email: str,
    password: str,
    first_name: str = "Admin",
    last_name: str = "User",
) -> User:
    """Create a verified user holding the admin role unless the email is already registered."""
    existing = store.get_user_by_email(email)
    if existing is not None:
        logger.info("Admin user already exists: user_id=%s", existing.id)
        return existing
    admin_role = store.get_role_by_name(settings.ADMIN_ROLE_NAME)
    role_ids = [admin_role.id] if admin_role is not None else []
    user = store.create_user(
        email=email,
        password_hash=hash_password(password, settings.BCRYPT_ROUNDS),
        first_name=first_name,
        last_name=last_name,
        role_ids=role_ids,
        is_email_verified=True,
    )
    logger.info("Seeded admin user: user_id=%s", user.id)
    return user
