"""Admin user-management API endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from gatekeeper.dependencies import get_lifecycle_service, get_user_service, require_admin
from gatekeeper.models.account import AccountStatus, Role
from gatekeeper.schemas.common import ApiResponse
from gatekeeper.schemas.users import ActivateRequest, AdminUpdateRequest, SuspendRequest
from gatekeeper.services.gate import RequestContext
from gatekeeper.services.lifecycle import AccountLifecycleService
from gatekeeper.services.users import UserService

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/", response_model=ApiResponse)
def list_users(
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    search: str | None = None,
    role: Role | None = None,
    status: AccountStatus | None = None,
    admin: RequestContext = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """List accounts with pagination, search and role/status filters."""
    items, pagination = users.list_accounts(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        role=role,
        status=status,
    )
    return ApiResponse(
        message="Users retrieved successfully",
        data={"users": [a.model_dump(mode="json") for a in items], "pagination": pagination.model_dump()},
    )


@router.get("/stats", response_model=ApiResponse)
def user_stats(
    admin: RequestContext = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    return ApiResponse(message="User statistics retrieved successfully", data=users.account_stats())


@router.get("/{account_id}", response_model=ApiResponse)
def get_user(
    account_id: str,
    admin: RequestContext = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    account = users.get_account(account_id)
    return ApiResponse(message="User retrieved successfully", data={"user": account.model_dump(mode="json")})


@router.put("/{account_id}", response_model=ApiResponse)
def update_user(
    account_id: str,
    body: AdminUpdateRequest,
    admin: RequestContext = Depends(require_admin),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    account = users.admin_update(
        account_id,
        admin,
        name=body.name,
        bio=body.bio,
        avatar_url=body.avatar_url,
        role=body.role,
    )
    return ApiResponse(message="User updated successfully", data={"user": account.model_dump(mode="json")})


@router.delete("/{account_id}", response_model=ApiResponse)
def delete_user(
    account_id: str,
    admin: RequestContext = Depends(require_admin),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Soft-delete an account."""
    service.soft_delete(account_id, acting_admin_id=admin.account_id)
    return ApiResponse(message="User deleted successfully", data={})


@router.post("/{account_id}/suspend", response_model=ApiResponse)
def suspend_user(
    account_id: str,
    body: SuspendRequest,
    admin: RequestContext = Depends(require_admin),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    account = service.suspend(account_id, body.reason, admin.account_id)
    return ApiResponse(message="User suspended successfully", data={"user": account.model_dump(mode="json")})


@router.post("/{account_id}/activate", response_model=ApiResponse)
def activate_user(
    account_id: str,
    body: ActivateRequest | None = None,
    admin: RequestContext = Depends(require_admin),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    reason = body.reason if body else None
    account = service.activate(account_id, admin.account_id, reason=reason)
    return ApiResponse(message="User activated successfully", data={"user": account.model_dump(mode="json")})


@router.get("/{account_id}/suspension", response_model=ApiResponse)
def suspension_details(
    account_id: str,
    admin: RequestContext = Depends(require_admin),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    details = service.get_suspension_details(account_id)
    return ApiResponse(message="Suspension details retrieved successfully", data=asdict(details))
