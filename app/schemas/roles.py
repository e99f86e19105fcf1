"""Request/response schemas for role endpoints."""

from pydantic import BaseModel, Field, PositiveInt

from app.schemas.permissions import PermissionOut


class RoleOut(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class RoleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Unique role name")
    description: str | None = Field(default=None, max_length=2000)


class RoleUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class RoleListResponse(BaseModel):
    roles: list[RoleOut]


class RolePermissionsResponse(BaseModel):
    permissions: list[PermissionOut]


class AssignPermissionsRequest(BaseModel):
    """Replacement permission set for a role (wholesale replace)."""

    permission_ids: list[PositiveInt] = Field(
        ..., description="IDs of every permission the role should grant"
    )
