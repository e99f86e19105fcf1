"""Credential store: users, roles, permissions and their associations.

Lookups return None (or an empty list) for absent rows. Writes commit per call;
association replacement runs as one transaction so a reader sees either the old
set or the new set.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    DuplicateNameError,
    EmailInUseError,
    PermissionNotFoundError,
    RoleNotFoundError,
    ServiceError,
    UserNotFoundError,
)
from app.models import Permission, Role, RolePermission, User, UserRole
from app.models.base import utcnow

logger = logging.getLogger(__name__)

# Columns callers may change through update_*; anything else is a programming error.
USER_UPDATABLE_FIELDS = frozenset(
    {
        "email",
        "first_name",
        "last_name",
        "password_hash",
        "is_email_verified",
        "reset_token",
        "reset_token_expiry",
    }
)
NAMED_ENTITY_UPDATABLE_FIELDS = frozenset({"name", "description"})


def _unique_ids(ids: Iterable[int]) -> list[int]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")


class CredentialStore:
    """Persistence for identities and the role/permission graph, bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _transaction(
        self, on_conflict: Callable[[], ServiceError] | None = None
    ) -> Iterator[None]:
        """Commit on success; roll back on any error, mapping unique violations to on_conflict()."""
        try:
            yield
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if on_conflict is None:
                raise
            raise on_conflict() from e
        except Exception:
            self.session.rollback()
            raise

    # Users

    def get_user(self, user_id: str) -> User | None:
        return self.session.query(User).filter(User.id == str(user_id)).first()

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == email).first()

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role_ids: Iterable[int] = (),
        is_email_verified: bool = False,
    ) -> User:
        """Insert a user and its initial role associations in one transaction."""
        unique_role_ids = _unique_ids(role_ids)
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            is_email_verified=is_email_verified,
        )
        with self._transaction(on_conflict=EmailInUseError):
            self._require_roles(unique_role_ids)
            self.session.add(user)
            self.session.flush()
            self.session.add_all(
                UserRole(user_id=user.id, role_id=role_id) for role_id in unique_role_ids
            )
        self.session.refresh(user)
        return user

    def update_user(self, user_id: str, **fields: Any) -> User:
        _check_fields(fields, USER_UPDATABLE_FIELDS)
        user = self.get_user(user_id)
        if user is None:
            raise UserNotFoundError()
        with self._transaction(on_conflict=EmailInUseError):
            for name, value in fields.items():
                setattr(user, name, value)
        self.session.refresh(user)
        return user

    def delete_user(self, user_id: str) -> bool:
        """Delete a user and its role assignments. Returns False when no such user."""
        user = self.get_user(user_id)
        if user is None:
            return False
        with self._transaction():
            self.session.delete(user)
        return True

    def list_users(self, page: int, limit: int) -> list[User]:
        """One page of users, newest first. Out-of-range page or limit yields an empty page."""
        if page < 1 or limit < 1:
            return []
        return (
            self.session.query(User)
            .order_by(User.created_at.desc(), User.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    def count_users(self) -> int:
        return self.session.query(User).count()

    # Roles

    def get_role(self, role_id: int) -> Role | None:
        return self.session.query(Role).filter(Role.id == role_id).first()

    def get_role_by_name(self, name: str) -> Role | None:
        return self.session.query(Role).filter(Role.name == name).first()

    def list_roles(self) -> list[Role]:
        return self.session.query(Role).order_by(Role.name).all()

    def create_role(self, name: str, description: str | None = None) -> Role:
        role = Role(name=name, description=description)
        with self._transaction(on_conflict=_duplicate_role_name):
            self.session.add(role)
        self.session.refresh(role)
        return role

    def update_role(self, role_id: int, **fields: Any) -> Role:
        _check_fields(fields, NAMED_ENTITY_UPDATABLE_FIELDS)
        role = self.get_role(role_id)
        if role is None:
            raise RoleNotFoundError()
        with self._transaction(on_conflict=_duplicate_role_name):
            for name, value in fields.items():
                setattr(role, name, value)
        self.session.refresh(role)
        return role

    def delete_role(self, role_id: int) -> bool:
        """Delete a role with its user and permission associations."""
        role = self.get_role(role_id)
        if role is None:
            return False
        with self._transaction():
            self.session.delete(role)
        return True

    # Permissions

    def get_permission(self, permission_id: int) -> Permission | None:
        return self.session.query(Permission).filter(Permission.id == permission_id).first()

    def get_permission_by_name(self, name: str) -> Permission | None:
        return self.session.query(Permission).filter(Permission.name == name).first()

    def list_permissions(self) -> list[Permission]:
        return self.session.query(Permission).order_by(Permission.name).all()

    def create_permission(self, name: str, description: str | None = None) -> Permission:
        permission = Permission(name=name, description=description)
        with self._transaction(on_conflict=_duplicate_permission_name):
            self.session.add(permission)
        self.session.refresh(permission)
        return permission

    def update_permission(self, permission_id: int, **fields: Any) -> Permission:
        _check_fields(fields, NAMED_ENTITY_UPDATABLE_FIELDS)
        permission = self.get_permission(permission_id)
        if permission is None:
            raise PermissionNotFoundError()
        with self._transaction(on_conflict=_duplicate_permission_name):
            for name, value in fields.items():
                setattr(permission, name, value)
        self.session.refresh(permission)
        return permission

    def delete_permission(self, permission_id: int) -> bool:
        permission = self.get_permission(permission_id)
        if permission is None:
            return False
        with self._transaction():
            self.session.delete(permission)
        return True

    # Associations

    def assign_roles(self, user_id: str, role_ids: Iterable[int]) -> int:
        """
        Replace the user's role set with role_ids. Returns the number of roles now held.

        Every id is checked before anything is written; a missing user or role raises
        and leaves the previous set in place.
        """
        unique_role_ids = _unique_ids(role_ids)
        with self._transaction():
            if self.get_user(user_id) is None:
                raise UserNotFoundError()
            self._require_roles(unique_role_ids)
            self.session.query(UserRole).filter(UserRole.user_id == str(user_id)).delete(
                synchronize_session="fetch"
            )
            self.session.add_all(
                UserRole(user_id=str(user_id), role_id=role_id) for role_id in unique_role_ids
            )
        logger.info("Assigned roles: user_id=%s, role_count=%s", user_id, len(unique_role_ids))
        return len(unique_role_ids)

    def assign_permissions(self, role_id: int, permission_ids: Iterable[int]) -> int:
        """Replace the role's permission set; same all-or-nothing rules as assign_roles."""
        unique_permission_ids = _unique_ids(permission_ids)
        with self._transaction():
            if self.get_role(role_id) is None:
                raise RoleNotFoundError()
            self._require_permissions(unique_permission_ids)
            self.session.query(RolePermission).filter(RolePermission.role_id == role_id).delete(
                synchronize_session="fetch"
            )
            self.session.add_all(
                RolePermission(role_id=role_id, permission_id=permission_id)
                for permission_id in unique_permission_ids
            )
        logger.info(
            "Assigned permissions: role_id=%s, permission_count=%s",
            role_id,
            len(unique_permission_ids),
        )
        return len(unique_permission_ids)

    def roles_of(self, user_id: str) -> list[Role]:
        return (
            self.session.query(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == str(user_id))
            .order_by(Role.name)
            .all()
        )

    def permissions_of(self, user_id: str) -> list[Permission]:
        """Union of the permissions of every role the user holds, one row per permission."""
        return (
            self.session.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .filter(UserRole.user_id == str(user_id))
            .distinct()
            .order_by(Permission.name)
            .all()
        )

    def consume_reset_token(self, user_id: str, token: str, password_hash: str) -> bool:
        """
        Set password_hash and clear the reset fields only while token is still the stored one.

        One conditional UPDATE: of two callers presenting the same token, exactly one gets True.
        """
        with self._transaction():
            updated = (
                self.session.query(User)
                .filter(User.id == str(user_id), User.reset_token == token)
                .update(
                    {
                        User.password_hash: password_hash,
                        User.reset_token: None,
                        User.reset_token_expiry: None,
                        User.updated_at: utcnow(),
                    },
                    synchronize_session="fetch",
                )
            )
        return updated == 1

    def role_permissions(self, role_id: int) -> list[Permission]:
        return (
            self.session.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .order_by(Permission.name)
            .all()
        )

    def _require_roles(self, role_ids: list[int]) -> None:
        if not role_ids:
            return
        found = {rid for (rid,) in self.session.query(Role.id).filter(Role.id.in_(role_ids))}
        for role_id in role_ids:
            if role_id not in found:
                raise RoleNotFoundError(f"Role with ID {role_id} not found")

    def _require_permissions(self, permission_ids: list[int]) -> None:
        if not permission_ids:
            return
        found = {
            pid
            for (pid,) in self.session.query(Permission.id).filter(
                Permission.id.in_(permission_ids)
            )
        }
        for permission_id in permission_ids:
            if permission_id not in found:
                raise PermissionNotFoundError(f"Permission with ID {permission_id} not found")


def _duplicate_role_name() -> DuplicateNameError:
    return DuplicateNameError("Role with this name already exists")


def _duplicate_permission_name() -> DuplicateNameError:
    return DuplicateNameError("Permission with this name already exists")
