"""Authentication and profile API endpoints."""

from fastapi import APIRouter, Depends, Request

from gatekeeper.dependencies import get_current_account, get_lifecycle_service, get_user_service
from gatekeeper.rate_limit import limiter
from gatekeeper.schemas.auth import ChangePasswordRequest, LoginRequest, RegisterRequest, UpdateProfileRequest
from gatekeeper.schemas.common import ApiResponse
from gatekeeper.services.gate import RequestContext
from gatekeeper.services.lifecycle import AccountLifecycleService, AuthResult
from gatekeeper.services.users import UserService

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _session_payload(result: AuthResult) -> dict:
    return {"user": result.account.model_dump(mode="json"), "token": result.token}


@router.post("/register", response_model=ApiResponse, status_code=201)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Register a new account and receive a session token."""
    result = service.register(body.email, body.password, body.name)
    return ApiResponse(message="User registered successfully", data=_session_payload(result))


@router.post("/login", response_model=ApiResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Authenticate and receive a session token."""
    result = service.login(body.email, body.password)
    return ApiResponse(message="Login successful", data=_session_payload(result))


@router.get("/me", response_model=ApiResponse)
def get_me(
    context: RequestContext = Depends(get_current_account),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Return the authenticated account."""
    account = users.get_profile(context.account_id)
    return ApiResponse(message="Profile retrieved successfully", data={"user": account.model_dump(mode="json")})


@router.put("/me", response_model=ApiResponse)
def update_me(
    body: UpdateProfileRequest,
    context: RequestContext = Depends(get_current_account),
    users: UserService = Depends(get_user_service),
) -> ApiResponse:
    """Update the authenticated account's name and bio."""
    account = users.update_profile(context.account_id, name=body.name, bio=body.bio)
    return ApiResponse(message="Profile updated successfully", data={"user": account.model_dump(mode="json")})


@router.post("/change-password", response_model=ApiResponse)
@limiter.limit("5/minute")
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    context: RequestContext = Depends(get_current_account),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    service.change_password(context.account_id, body.current_password, body.new_password)
    return ApiResponse(message="Password changed successfully")
