"""Password hashing and the signed token codec (access and refresh domains)."""

import enum
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import Settings
from app.core.exceptions import InvalidTokenError

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for password validation (request schemas use the same bounds).
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Claims every token must carry to be accepted by verify().
REQUIRED_CLAIMS = ["sub", "email", "roles", "permissions", "iat", "exp", "jti"]


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenDomain(enum.Enum):
    """Independent signing domains, each with its own secret and expiry."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Identity and authorization snapshot carried by a token."""

    subject_id: str
    email: str
    roles: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    token_id: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class _DomainKey:
    secret: str = field(repr=False)
    lifetime: timedelta


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidTokenError("Invalid token payload")
    return tuple(value)


class TokenCodec:
    """
    Issue and verify signed, self-expiring JWTs.

    Secrets and lifetimes are read once from Settings at construction and never change.
    The same clock stamps iat and exp on issue and decides expiry on verify.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self._algorithm = settings.JWT_ALGORITHM
        self._clock = clock
        self._domains = {
            TokenDomain.ACCESS: _DomainKey(
                secret=settings.JWT_SECRET.get_secret_value(),
                lifetime=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
            ),
            TokenDomain.REFRESH: _DomainKey(
                secret=settings.JWT_REFRESH_SECRET.get_secret_value(),
                lifetime=timedelta(minutes=settings.JWT_REFRESH_EXPIRE_MINUTES),
            ),
        }

    def lifetime(self, domain: TokenDomain) -> timedelta:
        return self._domains[domain].lifetime

    def issue(
        self,
        claims: TokenClaims,
        domain: TokenDomain,
        expires_in: timedelta | None = None,
    ) -> str:
        """Create a signed token for claims in the given domain. Timestamps and jti are set here."""
        key = self._domains[domain]
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": str(claims.subject_id),
            "email": claims.email,
            "roles": list(claims.roles),
            "permissions": list(claims.permissions),
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else key.lifetime),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, key.secret, algorithm=self._algorithm)

    def issue_pair(self, claims: TokenClaims) -> TokenPair:
        return TokenPair(
            access_token=self.issue(claims, TokenDomain.ACCESS),
            refresh_token=self.issue(claims, TokenDomain.REFRESH),
        )

    def verify(self, token: str, domain: TokenDomain) -> TokenClaims:
        """
        Decode and validate a token against the domain secret.
        Raises InvalidTokenError on bad signature, malformed payload or expiry.
        """
        key = self._domains[domain]
        try:
            payload = jwt.decode(
                token,
                key.secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

        sub = payload.get("sub")
        email = payload.get("email")
        if not isinstance(sub, str) or not sub or not isinstance(email, str):
            raise InvalidTokenError("Invalid token payload")
        try:
            issued_at = datetime.fromtimestamp(payload["iat"], UTC)
            expires_at = datetime.fromtimestamp(payload["exp"], UTC)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidTokenError("Invalid token payload") from e
        now = self._clock()
        if expires_at <= now:
            raise InvalidTokenError("Token has expired")
        if issued_at > now:
            raise InvalidTokenError("Token is not yet valid")
        return TokenClaims(
            subject_id=sub,
            email=email,
            roles=_string_tuple(payload.get("roles")),
            permissions=_string_tuple(payload.get("permissions")),
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=str(payload["jti"]),
        )


def claims_for(
    subject_id: str,
    email: str,
    roles: Iterable[str] = (),
    permissions: Iterable[str] = (),
) -> TokenClaims:
    """Build unsigned claims from a user's identity and grants."""
    return TokenClaims(
        subject_id=str(subject_id),
        email=email,
        roles=tuple(roles),
        permissions=tuple(permissions),
    )
