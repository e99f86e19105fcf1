"""Request/response schemas for user administration, and the sanitizing projections."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, PositiveInt

from app.models import User
from app.schemas.roles import RoleOut


class PublicUser(BaseModel):
    """User fields that may leave the service. Password and reset fields are never included."""

    id: str
    email: str
    first_name: str
    last_name: str


class UserDetail(PublicUser):
    """PublicUser plus account metadata for administrative views."""

    is_email_verified: bool
    created_at: datetime
    updated_at: datetime


def sanitize(user: User) -> PublicUser:
    """Project a stored user onto the whitelisted public fields."""
    return PublicUser(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def describe_user(user: User) -> UserDetail:
    return UserDetail(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        is_email_verified=user.is_email_verified,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class UserUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = Field(default=None, description="New login email")


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class UserListResponse(BaseModel):
    """Response for GET /users."""

    users: list[UserDetail]
    pagination: PaginationMeta


class UserRolesResponse(BaseModel):
    roles: list[RoleOut]


class AssignRolesRequest(BaseModel):
    """Replacement role set for a user (wholesale replace)."""

    role_ids: list[PositiveInt] = Field(..., description="IDs of every role the user should hold")


class AssignmentResponse(BaseModel):
    """Result of a wholesale association replacement."""

    success: bool = True
    assigned_count: int
