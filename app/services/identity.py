"""Identity service: registration, login, token refresh and password reset flows."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from app.core.config import Settings
from app.core.exceptions import (
    ConfigurationError,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    InvalidTokenError,
    UserNotFoundError,
)
from app.core.security import (
    TokenCodec,
    TokenDomain,
    TokenPair,
    claims_for,
    hash_password,
    utcnow,
    verify_password,
)
from app.models import User
from app.schemas.users import PublicUser, sanitize
from app.services.authorization import resolve_grants
from app.services.credential_store import CredentialStore
from app.services.notifier import Notifier, reset_password_email, welcome_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of register/login: the sanitized user and a fresh token pair."""

    user: PublicUser
    tokens: TokenPair


@lru_cache
def _dummy_password_hash(rounds: int) -> str:
    """A hash no password matches, checked against when the email is unknown."""
    return hash_password(secrets.token_urlsafe(32), rounds)


def _as_utc(value: datetime | None) -> datetime | None:
    """Backends without tz support hand timestamps back naive; they were stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class IdentityService:
    """
    Orchestrates the credential store, token codec and notifier.

    Settings are passed in once; nothing here reads process-wide configuration.
    """

    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        notifier: Notifier,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.codec = codec
        self.notifier = notifier
        self.settings = settings
        self._clock = clock

    def register(
        self, *, email: str, password: str, first_name: str, last_name: str
    ) -> AuthResult:
        """Create an account holding the default role and return a token pair."""
        if self.store.get_user_by_email(email) is not None:
            raise EmailInUseError()

        # Looked up before the user row is written so a missing role leaves no orphan account.
        default_role = self.store.get_role_by_name(self.settings.DEFAULT_ROLE_NAME)
        if default_role is None:
            logger.error(
                "Default role %r is missing; seed the database before accepting registrations",
                self.settings.DEFAULT_ROLE_NAME,
            )
            raise ConfigurationError("Default role not found")

        user = self.store.create_user(
            email=email,
            password_hash=hash_password(password, self.settings.BCRYPT_ROUNDS),
            first_name=first_name,
            last_name=last_name,
            role_ids=[default_role.id],
        )
        logger.info("Registered user: user_id=%s, role=%s", user.id, default_role.name)

        subject, body = welcome_email(first_name)
        self._notify(user.email, subject, body)

        return AuthResult(user=sanitize(user), tokens=self._issue_tokens(user))

    def login(self, *, email: str, password: str) -> AuthResult:
        """
        Authenticate by email and password.
        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        user = self.store.get_user_by_email(email)
        if user is None:
            # Unknown emails still pay one bcrypt check.
            verify_password(password, _dummy_password_hash(self.settings.BCRYPT_ROUNDS))
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()
        logger.info("Login succeeded: user_id=%s", user.id)
        return AuthResult(user=sanitize(user), tokens=self._issue_tokens(user))

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Mint a new pair from a valid refresh token, re-reading the user's grants.

        The presented refresh token is not invalidated and stays usable until it expires.
        """
        try:
            claims = self.codec.verify(refresh_token, TokenDomain.REFRESH)
        except InvalidTokenError as e:
            raise InvalidTokenError("Invalid or expired refresh token") from e

        user = self.store.get_user(claims.subject_id)
        if user is None:
            raise UserNotFoundError()
        logger.info("Refreshed tokens: user_id=%s", user.id)
        return self._issue_tokens(user)

    def forgot_password(self, email: str) -> None:
        """Email a single-use reset link if the account exists. Always returns normally."""
        user = self.store.get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for an unknown email; ignoring")
            return

        lifetime = timedelta(minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES)
        token = self.codec.issue(
            claims_for(user.id, user.email), TokenDomain.ACCESS, expires_in=lifetime
        )
        # Overwrites any earlier reset token, which invalidates it.
        self.store.update_user(
            user.id, reset_token=token, reset_token_expiry=self._clock() + lifetime
        )
        logger.info("Issued password reset token: user_id=%s", user.id)

        subject, body = reset_password_email(
            token, self.settings.CLIENT_URL, self.settings.RESET_TOKEN_EXPIRE_MINUTES
        )
        self._notify(user.email, subject, body)

    def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password if token is the user's current, unexpired reset token."""
        try:
            claims = self.codec.verify(token, TokenDomain.ACCESS)
        except InvalidTokenError as e:
            raise InvalidResetTokenError() from e

        user = self.store.get_user(claims.subject_id)
        if user is None:
            raise UserNotFoundError()

        expiry = _as_utc(user.reset_token_expiry)
        if (
            not user.reset_token
            or not secrets.compare_digest(user.reset_token, token)
            or expiry is None
            or expiry <= self._clock()
        ):
            logger.info("Rejected password reset token: user_id=%s", user.id)
            raise InvalidResetTokenError()

        consumed = self.store.consume_reset_token(
            user.id, token, hash_password(new_password, self.settings.BCRYPT_ROUNDS)
        )
        if not consumed:
            # Another request used or replaced the token after the checks above.
            logger.info("Reset token consumed concurrently: user_id=%s", user.id)
            raise InvalidResetTokenError()
        logger.info("Password reset completed: user_id=%s", user.id)

    def _issue_tokens(self, user: User) -> TokenPair:
        grants = resolve_grants(self.store, user.id)
        return self.codec.issue_pair(
            claims_for(user.id, user.email, grants.roles, grants.permissions)
        )

    def _notify(self, to_address: str, subject: str, html_body: str) -> None:
        """Best-effort delivery; a failed send is logged and never fails the calling flow."""
        try:
            delivered = self.notifier.send(to_address, subject, html_body)
        except Exception:
            logger.exception("Notifier raised while sending %r", subject)
            return
        if not delivered:
            logger.warning("Could not deliver %r email", subject)
