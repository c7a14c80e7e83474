"""Email verification and password reset API endpoints."""

from fastapi import APIRouter, Depends, Request

from gatekeeper.dependencies import get_current_account, get_lifecycle_service
from gatekeeper.rate_limit import limiter
from gatekeeper.schemas.auth import ForgotPasswordRequest, ResetPasswordRequest, TokenRequest
from gatekeeper.schemas.common import ApiResponse
from gatekeeper.services.gate import RequestContext
from gatekeeper.services.lifecycle import AccountLifecycleService

router = APIRouter(prefix="/api/v1/email", tags=["Email"])


@router.post("/send-verification", response_model=ApiResponse)
@limiter.limit("5/minute")
def send_verification(
    request: Request,
    context: RequestContext = Depends(get_current_account),
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Email a verification link to the authenticated account."""
    return ApiResponse(message=service.request_email_verification(context.account_id))


@router.post("/verify", response_model=ApiResponse)
@limiter.limit("10/minute")
def verify_email(
    request: Request,
    body: TokenRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    return ApiResponse(message=service.verify_email(body.token))


@router.post("/forgot-password", response_model=ApiResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Request a password reset link. The response never reveals whether the email is registered."""
    return ApiResponse(message=service.request_password_reset(body.email))


@router.post("/reset-password/validate", response_model=ApiResponse)
@limiter.limit("10/minute")
def validate_reset_token(
    request: Request,
    body: TokenRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    """Check a reset token before showing the reset form. Does not consume it."""
    return ApiResponse(message="Reset token is valid", data=service.validate_reset_token(body.token))


@router.post("/reset-password", response_model=ApiResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    service: AccountLifecycleService = Depends(get_lifecycle_service),
) -> ApiResponse:
    return ApiResponse(message=service.confirm_password_reset(body.token, body.new_password))
