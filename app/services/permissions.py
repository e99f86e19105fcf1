"""Permission administration and the fixed set of system permission names."""

import logging

from app.core.exceptions import (
    DuplicateNameError,
    PermissionNotFoundError,
    SystemEntityProtectedError,
)
from app.models import Permission
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

READ_USER = "READ_USER"
CREATE_USER = "CREATE_USER"
UPDATE_USER = "UPDATE_USER"
DELETE_USER = "DELETE_USER"
READ_ROLE = "READ_ROLE"
CREATE_ROLE = "CREATE_ROLE"
UPDATE_ROLE = "UPDATE_ROLE"
DELETE_ROLE = "DELETE_ROLE"
READ_PERMISSION = "READ_PERMISSION"
CREATE_PERMISSION = "CREATE_PERMISSION"
UPDATE_PERMISSION = "UPDATE_PERMISSION"
DELETE_PERMISSION = "DELETE_PERMISSION"
ACCESS_SWAGGER = "ACCESS_SWAGGER"

# Seeded permissions and their descriptions (insertion order is the seed order).
SEED_PERMISSIONS: dict[str, str] = {
    READ_USER: "Can read user data",
    CREATE_USER: "Can create users",
    UPDATE_USER: "Can update user data",
    DELETE_USER: "Can delete users",
    READ_ROLE: "Can read role data",
    CREATE_ROLE: "Can create roles",
    UPDATE_ROLE: "Can update role data",
    DELETE_ROLE: "Can delete roles",
    READ_PERMISSION: "Can read permission data",
    CREATE_PERMISSION: "Can create permissions",
    UPDATE_PERMISSION: "Can update permission data",
    DELETE_PERMISSION: "Can delete permissions",
    ACCESS_SWAGGER: "Can access API documentation",
}

# Permissions that may be edited but never deleted.
SYSTEM_PERMISSIONS: frozenset[str] = frozenset(SEED_PERMISSIONS)


def create_permission(
    store: CredentialStore, name: str, description: str | None = None
) -> Permission:
    if store.get_permission_by_name(name) is not None:
        raise DuplicateNameError("Permission with this name already exists")
    permission = store.create_permission(name, description)
    logger.info("Created permission: id=%s, name=%s", permission.id, permission.name)
    return permission


def get_permission(store: CredentialStore, permission_id: int) -> Permission:
    permission = store.get_permission(permission_id)
    if permission is None:
        raise PermissionNotFoundError()
    return permission


def list_permissions(store: CredentialStore) -> list[Permission]:
    return store.list_permissions()


def update_permission(
    store: CredentialStore,
    permission_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Permission:
    """Rename and/or redescribe a permission. System permissions may be edited too."""
    permission = get_permission(store, permission_id)
    fields: dict[str, str] = {}
    if name is not None and name != permission.name:
        if store.get_permission_by_name(name) is not None:
            raise DuplicateNameError("Permission with this name already exists")
        fields["name"] = name
    if description is not None:
        fields["description"] = description
    if not fields:
        return permission
    return store.update_permission(permission_id, **fields)


def delete_permission(store: CredentialStore, permission_id: int) -> None:
    permission = get_permission(store, permission_id)
    if permission.name in SYSTEM_PERMISSIONS:
        raise SystemEntityProtectedError("Cannot delete system permissions")
    store.delete_permission(permission_id)
    logger.info("Deleted permission: id=%s, name=%s", permission_id, permission.name)
