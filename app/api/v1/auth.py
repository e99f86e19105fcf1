"""Auth endpoints (register, login, refresh, password reset) and the request interceptor dependencies."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.deps import get_identity_service, get_token_codec
from app.core.exceptions import InvalidTokenError
from app.core.security import TokenClaims, TokenCodec, TokenDomain
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairResponse,
)
from app.services.authorization import has_all_permissions, has_any_role
from app.services.identity import AuthResult, IdentityService

router = APIRouter()
security = HTTPBearer(auto_error=False)

FORGOT_PASSWORD_MESSAGE = "If that email is registered, a password reset link has been sent."


def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
) -> TokenClaims:
    """Dependency: require a valid Bearer access token and return its claims. Raises 401 otherwise."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return codec.verify(credentials.credentials, TokenDomain.ACCESS)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(*roles: str) -> Callable[..., TokenClaims]:
    """Dependency factory: caller must hold at least one of roles. Raises 403 otherwise."""

    def dependency(
        claims: Annotated[TokenClaims, Depends(get_current_claims)],
    ) -> TokenClaims:
        if not has_any_role(claims, roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied: insufficient role",
            )
        return claims

    return dependency


def require_permissions(*permissions: str) -> Callable[..., TokenClaims]:
    """Dependency factory: caller must hold every one of permissions. Raises 403 otherwise."""

    def dependency(
        claims: Annotated[TokenClaims, Depends(get_current_claims)],
    ) -> TokenClaims:
        if not has_all_permissions(claims, permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied: insufficient permissions",
            )
        return claims

    return dependency


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=result.user,
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> AuthResponse:
    """Create an account with the default role; returns the user and a token pair."""
    result = identity.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return _auth_response(result)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    return _auth_response(identity.login(email=body.email, password=body.password))


@router.post("/refresh-token", response_model=TokenPairResponse)
def refresh_token(
    body: RefreshTokenRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> TokenPairResponse:
    """Exchange a refresh token for a new pair carrying the user's current roles and permissions."""
    tokens = identity.refresh(body.refresh_token)
    return TokenPairResponse(
        access_token=tokens.access_token, refresh_token=tokens.refresh_token
    )


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> MessageResponse:
    """Send a reset link if the email is registered. The response never reveals whether it is."""
    identity.forgot_password(body.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> MessageResponse:
    identity.reset_password(body.token, body.password)
    return MessageResponse(message="Password has been reset successfully.")


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
) -> ProfileResponse:
    """Identity and grants of the caller as carried by the access token."""
    return ProfileResponse(
        id=claims.subject_id,
        email=claims.email,
        roles=list(claims.roles),
        permissions=list(claims.permissions),
    )
