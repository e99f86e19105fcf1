"""Role administration: CRUD, system-role protection and permission assignment."""

import logging
from collections.abc import Iterable

from app.core.config import Settings
from app.core.exceptions import (
    DuplicateNameError,
    RoleNotFoundError,
    SystemEntityProtectedError,
)
from app.models import Permission, Role
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


def create_role(store: CredentialStore, name: str, description: str | None = None) -> Role:
    if store.get_role_by_name(name) is not None:
        raise DuplicateNameError("Role with this name already exists")
    role = store.create_role(name, description)
    logger.info("Created role: id=%s, name=%s", role.id, role.name)
    return role


def get_role(store: CredentialStore, role_id: int) -> Role:
    role = store.get_role(role_id)
    if role is None:
        raise RoleNotFoundError()
    return role


def list_roles(store: CredentialStore) -> list[Role]:
    return store.list_roles()


def update_role(
    store: CredentialStore,
    role_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Role:
    role = get_role(store, role_id)
    fields: dict[str, str] = {}
    if name is not None and name != role.name:
        if store.get_role_by_name(name) is not None:
            raise DuplicateNameError("Role with this name already exists")
        fields["name"] = name
    if description is not None:
        fields["description"] = description
    if not fields:
        return role
    return store.update_role(role_id, **fields)


def delete_role(store: CredentialStore, role_id: int, settings: Settings) -> None:
    """Delete a role. The configured system roles are protected and stay in place."""
    role = get_role(store, role_id)
    if role.name in settings.protected_role_names:
        raise SystemEntityProtectedError("Cannot delete system roles")
    store.delete_role(role_id)
    logger.info("Deleted role: id=%s, name=%s", role_id, role.name)


def get_role_permissions(store: CredentialStore, role_id: int) -> list[Permission]:
    get_role(store, role_id)
    return store.role_permissions(role_id)


def assign_permissions_to_role(
    store: CredentialStore, role_id: int, permission_ids: Iterable[int]
) -> int:
    """Replace the role's permissions; all-or-nothing. Returns the assigned count."""
    return store.assign_permissions(role_id, permission_ids)
