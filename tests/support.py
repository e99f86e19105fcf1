"""Shared helpers for tests: in-memory SQLite sessions, settings and a recording notifier."""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import enable_sqlite_foreign_keys
from app.core.security import hash_password
from app.models import Base, User
from app.services.credential_store import CredentialStore

STRONG_PASSWORD = "Abc12345!"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": "test-access-secret",
        "JWT_REFRESH_SECRET": "test-refresh-secret",
        "BCRYPT_ROUNDS": 4,
        "SENDGRID_API_KEY": None,
        "CLIENT_URL": "http://client.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with the full schema; one shared connection across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def make_session() -> Session:
    return make_session_factory()()


def add_user(
    store: CredentialStore,
    email: str,
    *,
    password: str = STRONG_PASSWORD,
    roles: tuple[str, ...] = (),
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    """Create a user holding the named (already existing) roles."""
    role_ids = [store.get_role_by_name(name).id for name in roles]
    return store.create_user(
        email=email,
        password_hash=hash_password(password, 4),
        first_name=first_name,
        last_name=last_name,
        role_ids=role_ids,
    )


class RecordingNotifier:
    """Notifier that records every message and returns a fixed delivery result."""

    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to_address: str, subject: str, html_body: str) -> bool:
        self.sent.append((to_address, subject, html_body))
        if self.error is not None:
            raise self.error
        return self.result
