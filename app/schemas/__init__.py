"""Pydantic request/response schemas."""

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
from app.schemas.health import HealthResponse
from app.schemas.permissions import (
    PermissionCreateRequest,
    PermissionListResponse,
    PermissionOut,
    PermissionUpdateRequest,
)
from app.schemas.roles import (
    AssignPermissionsRequest,
    RoleCreateRequest,
    RoleListResponse,
    RoleOut,
    RolePermissionsResponse,
    RoleUpdateRequest,
)
from app.schemas.users import (
    AssignmentResponse,
    AssignRolesRequest,
    PaginationMeta,
    PublicUser,
    UserDetail,
    UserListResponse,
    UserRolesResponse,
    UserUpdateRequest,
    describe_user,
    sanitize,
)

__all__ = [
    "AssignPermissionsRequest",
    "AssignRolesRequest",
    "AssignmentResponse",
    "AuthResponse",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PaginationMeta",
    "PermissionCreateRequest",
    "PermissionListResponse",
    "PermissionOut",
    "PermissionUpdateRequest",
    "ProfileResponse",
    "PublicUser",
    "RefreshTokenRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "RoleCreateRequest",
    "RoleListResponse",
    "RoleOut",
    "RolePermissionsResponse",
    "RoleUpdateRequest",
    "TokenPairResponse",
    "UserDetail",
    "UserListResponse",
    "UserRolesResponse",
    "UserUpdateRequest",
    "describe_user",
    "sanitize",
]
