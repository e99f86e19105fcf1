"""User administration: lookup, profile updates, paginated listing and role assignment."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from app.core.exceptions import EmailInUseError, UserNotFoundError
from app.models import Role, User
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserPage:
    users: list[User]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit < 1:
            return 0
        return math.ceil(self.total / self.limit)


def get_user(store: CredentialStore, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise UserNotFoundError()
    return user


def update_user(
    store: CredentialStore,
    user_id: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
) -> User:
    """Apply the given profile fields. An email held by another user raises EmailInUseError."""
    get_user(store, user_id)
    fields: dict[str, str] = {}
    if email is not None:
        existing = store.get_user_by_email(email)
        if existing is not None and existing.id != user_id:
            raise EmailInUseError()
        fields["email"] = email
    if first_name is not None:
        fields["first_name"] = first_name
    if last_name is not None:
        fields["last_name"] = last_name
    return store.update_user(user_id, **fields)


def list_users(store: CredentialStore, page: int = 1, limit: int = 10) -> UserPage:
    return UserPage(
        users=store.list_users(page, limit),
        total=store.count_users(),
        page=page,
        limit=limit,
    )


def delete_user(store: CredentialStore, user_id: str) -> None:
    if not store.delete_user(user_id):
        raise UserNotFoundError()
    logger.info("Deleted user: user_id=%s", user_id)


def get_user_roles(store: CredentialStore, user_id: str) -> list[Role]:
    get_user(store, user_id)
    return store.roles_of(user_id)


def assign_roles_to_user(store: CredentialStore, user_id: str, role_ids: Iterable[int]) -> int:
    """Replace the user's roles; all-or-nothing. Takes effect in access tokens at next login or refresh."""
    return store.assign_roles(user_id, role_ids)
