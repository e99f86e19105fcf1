"""Request/response schemas for auth endpoints."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.schemas.users import PublicUser

# At least one lowercase, one uppercase, one digit and one of @$!%*?&.
PASSWORD_COMPLEXITY = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])")


def _validate_password_complexity(value: str) -> str:
    if not PASSWORD_COMPLEXITY.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number and one special character (@$!%*?&)"
        )
    return value


class RegisterRequest(BaseModel):
    """New account details."""

    email: EmailStr = Field(..., description="Login email (unique)")
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_complexity(v)


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or register")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Reset token from the email link and the new password."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_complexity(v)


class TokenPairResponse(BaseModel):
    """Access and refresh tokens. Send the access token as: Authorization: Bearer <access_token>"""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class AuthResponse(TokenPairResponse):
    """Tokens plus the sanitized user, returned by register and login."""

    user: PublicUser


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    """Identity and grants of the authenticated caller, as carried by the access token."""

    id: str
    email: str
    roles: list[str]
    permissions: list[str]
