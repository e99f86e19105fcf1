"""Role management endpoints, gated by role permissions."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from app.api.deps import get_store
from app.api.v1.auth import require_permissions
from app.core.config import Settings, get_settings
from app.core.security import TokenClaims
from app.schemas.auth import MessageResponse
from app.schemas.permissions import PermissionOut
from app.schemas.roles import (
    AssignPermissionsRequest,
    RoleCreateRequest,
    RoleListResponse,
    RoleOut,
    RolePermissionsResponse,
    RoleUpdateRequest,
)
from app.schemas.users import AssignmentResponse
from app.services import roles as role_service
from app.services.credential_store import CredentialStore
from app.services.permissions import (
    CREATE_ROLE,
    DELETE_ROLE,
    READ_PERMISSION,
    READ_ROLE,
    UPDATE_ROLE,
)

router = APIRouter()

Store = Annotated[CredentialStore, Depends(get_store)]
RoleId = Annotated[int, Path(gt=0, description="Role ID")]


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreateRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(CREATE_ROLE))],
) -> RoleOut:
    return RoleOut.model_validate(role_service.create_role(store, body.name, body.description))


@router.get("", response_model=RoleListResponse)
def list_roles(
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_ROLE))],
) -> RoleListResponse:
    return RoleListResponse(
        roles=[RoleOut.model_validate(r) for r in role_service.list_roles(store)]
    )


@router.get("/{role_id}", response_model=RoleOut)
def get_role(
    role_id: RoleId,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_ROLE))],
) -> RoleOut:
    return RoleOut.model_validate(role_service.get_role(store, role_id))


@router.patch("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: RoleId,
    body: RoleUpdateRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(UPDATE_ROLE))],
) -> RoleOut:
    role = role_service.update_role(
        store, role_id, name=body.name, description=body.description
    )
    return RoleOut.model_validate(role)


@router.delete("/{role_id}", response_model=MessageResponse)
def delete_role(
    role_id: RoleId,
    store: Store,
    settings: Annotated[Settings, Depends(get_settings)],
    _claims: Annotated[TokenClaims, Depends(require_permissions(DELETE_ROLE))],
) -> MessageResponse:
    """Delete a role. System roles are protected (403)."""
    role_service.delete_role(store, role_id, settings)
    return MessageResponse(message="Role deleted successfully")


@router.get("/{role_id}/permissions", response_model=RolePermissionsResponse)
def get_role_permissions(
    role_id: RoleId,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_ROLE, READ_PERMISSION))],
) -> RolePermissionsResponse:
    permissions = role_service.get_role_permissions(store, role_id)
    return RolePermissionsResponse(
        permissions=[PermissionOut.model_validate(p) for p in permissions]
    )


@router.post("/{role_id}/permissions", response_model=AssignmentResponse)
def assign_role_permissions(
    role_id: RoleId,
    body: AssignPermissionsRequest,
    store: Store,
    _claims: Annotated[
        TokenClaims, Depends(require_permissions(UPDATE_ROLE, READ_PERMISSION))
    ],
) -> AssignmentResponse:
    """Replace the role's permissions with permission_ids. Unknown ids fail the whole request."""
    count = role_service.assign_permissions_to_role(store, role_id, body.permission_ids)
    return AssignmentResponse(assigned_count=count)
