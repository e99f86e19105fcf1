"""Dependency providers wiring the store, token codec, notifier and identity service per request."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import TokenCodec
from app.services.credential_store import CredentialStore
from app.services.identity import IdentityService
from app.services.notifier import Notifier, SendGridNotifier


@lru_cache
def get_token_codec() -> TokenCodec:
    """One codec per process; its secrets are read once at startup."""
    return TokenCodec(get_settings())


def get_store(db: Annotated[Session, Depends(get_db)]) -> CredentialStore:
    return CredentialStore(db)


def get_notifier(settings: Annotated[Settings, Depends(get_settings)]) -> Notifier:
    return SendGridNotifier(settings)


def get_identity_service(
    store: Annotated[CredentialStore, Depends(get_store)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IdentityService:
    return IdentityService(store, codec, notifier, settings)
