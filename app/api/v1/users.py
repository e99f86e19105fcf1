"""User administration endpoints, gated by user permissions."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_store
from app.api.v1.auth import require_permissions
from app.core.security import TokenClaims
from app.schemas.auth import MessageResponse
from app.schemas.roles import RoleOut
from app.schemas.users import (
    AssignmentResponse,
    AssignRolesRequest,
    PaginationMeta,
    UserDetail,
    UserListResponse,
    UserRolesResponse,
    UserUpdateRequest,
    describe_user,
)
from app.services import users as user_service
from app.services.credential_store import CredentialStore
from app.services.permissions import DELETE_USER, READ_ROLE, READ_USER, UPDATE_USER

router = APIRouter()

Store = Annotated[CredentialStore, Depends(get_store)]


@router.get("", response_model=UserListResponse)
def list_users(
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_USER))],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> UserListResponse:
    """List users newest first, one page at a time."""
    result = user_service.list_users(store, page=page, limit=limit)
    return UserListResponse(
        users=[describe_user(u) for u in result.users],
        pagination=PaginationMeta(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{user_id}", response_model=UserDetail)
def get_user(
    user_id: uuid.UUID,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_USER))],
) -> UserDetail:
    return describe_user(user_service.get_user(store, str(user_id)))


@router.patch("/{user_id}", response_model=UserDetail)
def update_user(
    user_id: uuid.UUID,
    body: UserUpdateRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(UPDATE_USER))],
) -> UserDetail:
    user = user_service.update_user(
        store,
        str(user_id),
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
    )
    return describe_user(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(DELETE_USER))],
) -> MessageResponse:
    user_service.delete_user(store, str(user_id))
    return MessageResponse(message="User deleted successfully")


@router.get("/{user_id}/roles", response_model=UserRolesResponse)
def get_user_roles(
    user_id: uuid.UUID,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(READ_USER))],
) -> UserRolesResponse:
    roles = user_service.get_user_roles(store, str(user_id))
    return UserRolesResponse(roles=[RoleOut.model_validate(r) for r in roles])


@router.post("/{user_id}/roles", response_model=AssignmentResponse)
def assign_user_roles(
    user_id: uuid.UUID,
    body: AssignRolesRequest,
    store: Store,
    _claims: Annotated[TokenClaims, Depends(require_permissions(UPDATE_USER, READ_ROLE))],
) -> AssignmentResponse:
    """Replace the user's roles with role_ids. Unknown ids fail the whole request."""
    count = user_service.assign_roles_to_user(store, str(user_id), body.role_ids)
    return AssignmentResponse(assigned_count=count)
