"""
Authorization engine: derive a user's grants and decide allow/deny on token claims.

Decisions read only the role/permission snapshot baked into a verified token, so a
grant revoked after issuance stays usable until that access token expires. Refresh
re-resolves grants from the store.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from app.core.security import TokenClaims
from app.services.credential_store import CredentialStore


@dataclass(frozen=True)
class Grants:
    """Effective role names and deduplicated permission names of one user."""

    roles: tuple[str, ...]
    permissions: tuple[str, ...]


def resolve_grants(store: CredentialStore, user_id: str) -> Grants:
    """Compute the user's grants fresh from the store (never from a cached token)."""
    roles = tuple(role.name for role in store.roles_of(user_id))
    permissions = tuple(permission.name for permission in store.permissions_of(user_id))
    return Grants(roles=roles, permissions=permissions)


def has_any_role(claims: TokenClaims, required_roles: Iterable[str]) -> bool:
    """True iff the claims hold at least one of required_roles. An empty requirement never passes."""
    held = set(claims.roles)
    return any(role in held for role in required_roles)


def has_all_permissions(claims: TokenClaims, required_permissions: Iterable[str]) -> bool:
    """True iff every required permission is present in the claims."""
    held = set(claims.permissions)
    return all(permission in held for permission in required_permissions)
