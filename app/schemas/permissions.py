"""Request/response schemas for permission endpoints."""

from pydantic import BaseModel, Field


class PermissionOut(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class PermissionCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Unique permission name")
    description: str | None = Field(default=None, max_length=2000)


class PermissionUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class PermissionListResponse(BaseModel):
    permissions: list[PermissionOut]
