"""Interactive API documentation, served only to callers holding the docs role."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse

from app.api.v1.auth import get_current_claims
from app.core.config import Settings, get_settings
from app.core.security import TokenClaims
from app.services.authorization import has_any_role

router = APIRouter()

DOCS_PATH = "/api-docs"
OPENAPI_PATH = f"{DOCS_PATH}/openapi.json"


def require_docs_role(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenClaims:
    """The role name comes from settings at request time, so it cannot be a static require_roles()."""
    if not has_any_role(claims, [settings.DOCS_ROLE_NAME]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: insufficient role",
        )
    return claims


@router.get(DOCS_PATH, include_in_schema=False, response_class=HTMLResponse)
def swagger_ui(
    _claims: Annotated[TokenClaims, Depends(require_docs_role)],
    request: Request,
) -> HTMLResponse:
    return get_swagger_ui_html(openapi_url=OPENAPI_PATH, title=f"{request.app.title} - Docs")


@router.get(OPENAPI_PATH, include_in_schema=False)
def openapi_schema(
    _claims: Annotated[TokenClaims, Depends(require_docs_role)],
    request: Request,
) -> JSONResponse:
    return JSONResponse(request.app.openapi())
