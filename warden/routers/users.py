"""Account API endpoints for signed-in users and administrators."""

import math

from fastapi import APIRouter, Depends, Query

from warden.dependencies import Principal, authenticate, get_auth_service, require_role
from warden.models.account import Role
from warden.rate_limit import RouteClass, rate_limit
from warden.schemas.account import (
    AccountResponse,
    ApiResponse,
    ChangePasswordRequest,
    DeleteAccountRequest,
    Pagination,
    UpdateProfileRequest,
)
from warden.services.auth import AuthService

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _account(account) -> dict:
    return AccountResponse.model_validate(account).model_dump(mode="json")


@router.get("/profile", response_model=ApiResponse, dependencies=[Depends(rate_limit(RouteClass.GENERIC))])
def get_profile(
    principal: Principal = Depends(authenticate),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Get the signed-in account."""
    return ApiResponse(data={"user": _account(auth.get_profile(principal.id))})


@router.put("/profile", response_model=ApiResponse, dependencies=[Depends(rate_limit(RouteClass.PROFILE_UPDATE))])
def update_profile(
    body: UpdateProfileRequest,
    principal: Principal = Depends(authenticate),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Update username and/or profile picture."""
    account = auth.update_profile(principal.id, username=body.username, profile_picture=body.profile_picture)
    return ApiResponse(message="Profile updated successfully", data={"user": _account(account)})


@router.post(
    "/change-password",
    response_model=ApiResponse,
    dependencies=[Depends(rate_limit(RouteClass.ACCOUNT_SENSITIVE))],
)
def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(authenticate),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Replace the password after checking the current one."""
    auth.change_password(principal.id, body.current_password, body.new_password)
    return ApiResponse(message="Password changed successfully")


@router.delete(
    "/account",
    response_model=ApiResponse,
    dependencies=[Depends(rate_limit(RouteClass.ACCOUNT_SENSITIVE))],
)
def delete_account(
    body: DeleteAccountRequest,
    principal: Principal = Depends(authenticate),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Delete the signed-in account after re-checking its password."""
    auth.delete_account(principal.id, body.password)
    return ApiResponse(message="Account deleted successfully")


@router.get("/", response_model=ApiResponse, dependencies=[Depends(rate_limit(RouteClass.GENERIC))])
def list_accounts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_role(Role.ADMIN)),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """List accounts page by page (admin only)."""
    items, total = auth.list_accounts(page, limit)
    pagination = Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
    return ApiResponse(data={"users": [_account(a) for a in items], "pagination": pagination.model_dump()})


@router.get("/{id}", response_model=ApiResponse, dependencies=[Depends(rate_limit(RouteClass.GENERIC))])
def get_account(
    id: str,
    principal: Principal = Depends(require_role(Role.ADMIN)),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Get one account by id (admin only)."""
    return ApiResponse(data={"user": _account(auth.get_account(id))})
