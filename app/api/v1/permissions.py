"""Permission management endpoints, gated by permission permissions."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from app.api.deps import get_store
from app.api.v1.auth import require_permissions
from app.core.security import TokenClaims
from app.schemas.auth import MessageResponse
from app.schemas.permissions import (
    PermissionCreateRequest,
    PermissionListResponse,
    PermissionOut,
    PermissionUpdateRequest,
)
from app.services import permissions as permission_service
from app.services.credential_store import CredentialStore
from app.services.permissions import (
    CREATE_PERMISSION,
    DELETE_PERMISSION,
    READ_PERMISSION,
    UPDATE_PERMISSION,
)

router = APIRouter()

Store = Annotated[CredentialStore, Depends(get_store)]
PermissionId = Annotated[int, Path(gt=0, description="Permission ID")]


@router.post("", response_model=PermissionOut, status_code=status.HTTP_201_CREATED)
def create_permission(
    body: PermissionCreateRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(CREATE_PERMISSION))],
) -> PermissionOut:
    permission = permission_service.create_permission(store, body.name, body.description)
    return PermissionOut.model_validate(permission)


@router.get("", response_model=PermissionListResponse)
def list_permissions(
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_PERMISSION))],
) -> PermissionListResponse:
    return PermissionListResponse(
        permissions=[
            PermissionOut.model_validate(p) for p in permission_service.list_permissions(store)
        ]
    )


@router.get("/{permission_id}", response_model=PermissionOut)
def get_permission(
    permission_id: PermissionId,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_PERMISSION))],
) -> PermissionOut:
    return PermissionOut.model_validate(permission_service.get_permission(store, permission_id))


@router.patch("/{permission_id}", response_model=PermissionOut)
def update_permission(
    permission_id: PermissionId,
    body: PermissionUpdateRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(UPDATE_PERMISSION))],
) -> PermissionOut:
    permission = permission_service.update_permission(
        store, permission_id, name=body.name, description=body.description
    )
    return PermissionOut.model_validate(permission)


@router.delete("/{permission_id}", response_model=MessageResponse)
def delete_permission(
    permission_id: PermissionId,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(DELETE_PERMISSION))],
) -> MessageResponse:
    """Delete a permission. System permissions are protected (403)."""
    permission_service.delete_permission(store, permission_id)
    return MessageResponse(message="Permission deleted successfully")
