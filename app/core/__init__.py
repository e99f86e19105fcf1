"""Settings, database sessions, domain errors and the token codec shared by every layer."""

from app.core.config import Settings, get_settings, settings
from app.core.database import SessionLocal, get_db
from app.core.exceptions import ServiceError
from app.core.security import TokenClaims, TokenCodec, TokenDomain

__all__ = [
    "ServiceError",
    "SessionLocal",
    "Settings",
    "TokenClaims",
    "TokenCodec",
    "TokenDomain",
    "get_db",
    "get_settings",
    "settings",
]
