"""Account lifecycle service.

Orchestrates registration, login, password management, email verification,
password reset and the ACTIVE <-> SUSPENDED -> DELETED state machine on top of
the account and ephemeral-token stores.

Notification dispatch is uneven: email-verification and
password-reset requests fail if the message cannot be sent, while the welcome,
suspension, activation and password-changed messages are best-effort.
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from gatekeeper.config import Settings, get_settings
from gatekeeper.database import utcnow
from gatekeeper.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    GatekeeperError,
    InternalError,
    NotFoundError,
    TooManyRequestsError,
    UnauthorizedError,
)
from gatekeeper.models.account import ADMIN_ROLES, Account, AccountStatus, Role
from gatekeeper.models.ephemeral_token import TokenPurpose
from gatekeeper.schemas.users import AccountRead
from gatekeeper.services.hasher import PasswordHasher
from gatekeeper.services.jwt import JWTService
from gatekeeper.services.notifications import NotificationError, NotificationType, Notifier
from gatekeeper.stores.accounts import AccountStore
from gatekeeper.stores.tokens import EphemeralTokenStore
from gatekeeper.validators import (
    validate_email,
    validate_name,
    validate_password,
    validate_reason,
)

logger = logging.getLogger("gatekeeper.lifecycle")

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_VERIFICATION_TOKEN = "Invalid or expired verification token"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
RESET_REQUESTED = "If an account with this email exists, a reset link has been sent"


@dataclass
class AuthResult:
    """Sanitized account view plus a freshly issued session token."""

    account: AccountRead
    token: str


@dataclass
class SuspensionDetails:
    is_suspended: bool
    suspension_reason: str | None = None
    suspended_at: datetime | None = None
    suspended_by: str | None = None


def use_case(name: str, context: str | None = None):
    """Turn storage and dispatch failures into InternalError at the use-case boundary.

    Domain errors pass through untouched. ``context`` names the argument
    (usually an account id) logged alongside the failure.
    """

    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except GatekeeperError:
                raise
            except (SQLAlchemyError, NotificationError) as exc:
                ref = None
                if context:
                    ref = signature.bind_partial(self, *args, **kwargs).arguments.get(context)
                logger.error("%s failed (%s=%s): %s", name, context or "ref", ref, exc, exc_info=True)
                raise InternalError() from exc

        return wrapper

    return decorator


class AccountLifecycleService:
    """Composes the stores, hasher, token issuer and notifier into account use cases."""

    def __init__(
        self,
        accounts: AccountStore,
        tokens: EphemeralTokenStore,
        notifier: Notifier,
        hasher: PasswordHasher,
        jwt_service: JWTService,
        settings: Settings | None = None,
    ) -> None:
        self.accounts = accounts
        self.tokens = tokens
        self.notifier = notifier
        self.hasher = hasher
        self.jwt_service = jwt_service
        self.settings = settings or get_settings()

    # --- helpers ---

    def _require_account(self, account_id: str) -> Account:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def _issue_session(self, account: Account) -> AuthResult:
        token = self.jwt_service.create_token(account.id, account.email, account.role)
        return AuthResult(account=AccountRead.model_validate(account), token=token)

    def _notify_best_effort(self, kind: NotificationType, payload: dict[str, Any], account_id: str) -> None:
        try:
            self.notifier.notify(kind, payload)
        except Exception:
            logger.warning("Failed to send %s notification for account %s", kind.value, account_id, exc_info=True)

    def _link(self, path: str, token: str) -> str:
        return f"{self.settings.FRONTEND_URL.rstrip('/')}/{path}?token={token}"

    @property
    def _cooldown(self) -> timedelta:
        return timedelta(minutes=self.settings.TOKEN_RESEND_COOLDOWN_MINUTES)

    # --- registration and login ---

    @use_case("register")
    def register(self, email: str, password: str, name: str | None = None) -> AuthResult:
        """Create an ACTIVE, unverified USER account and sign it in."""
        email = validate_email(email)
        validate_password(password)
        if name is not None and name.strip():
            name = validate_name(name)
        else:
            name = None

        if self.accounts.exists_by_email(email):
            raise ConflictError("Email is already registered")

        account = self.accounts.create(email=email, password_hash=self.hasher.hash(password), name=name)
        logger.info("Registered account %s", account.id)

        if self.settings.SEND_WELCOME_EMAIL:
            self._notify_best_effort(
                NotificationType.WELCOME,
                {"to": account.email, "name": account.name or "User"},
                account.id,
            )
        return self._issue_session(account)

    @use_case("login")
    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and issue a session token.

        Unknown emails and wrong passwords produce the same error.
        """
        account = self.accounts.find_by_email(email or "")
        if account is None:
            raise UnauthorizedError(INVALID_CREDENTIALS)
        self._ensure_can_sign_in(account)

        if not self.hasher.verify(password or "", account.password_hash):
            logger.info("Failed login for account %s", account.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        self.accounts.stamp_last_login(account.id)
        account = self._require_account(account.id)
        # Status may have changed while the password was being checked.
        self._ensure_can_sign_in(account)
        return self._issue_session(account)

    def _ensure_can_sign_in(self, account: Account) -> None:
        if account.status == AccountStatus.SUSPENDED:
            raise ForbiddenError("Account is suspended")
        if account.status == AccountStatus.DELETED:
            raise NotFoundError("Account not found")

    @use_case("change_password", context="account_id")
    def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        """Replace the password after checking the current one. Existing session tokens stay valid."""
        validate_password(new_password, field="new_password")
        account = self._require_account(account_id)
        if not self.hasher.verify(current_password or "", account.password_hash):
            raise BadRequestError("Invalid current password")
        self.accounts.set_password(account.id, self.hasher.hash(new_password))
        logger.info("Password changed for account %s", account.id)

    # --- email verification ---

    @use_case("request_email_verification", context="account_id")
    def request_email_verification(self, account_id: str) -> str:
        account = self._require_account(account_id)
        if account.email_verified:
            return "Email is already verified"

        if self.tokens.has_recent_token(account.id, TokenPurpose.EMAIL_VERIFICATION, self._cooldown):
            raise TooManyRequestsError(
                "Too many verification emails sent. Please wait before requesting another."
            )

        ttl_hours = self.settings.EMAIL_VERIFICATION_TTL_HOURS
        raw_token = self.tokens.issue(account.id, TokenPurpose.EMAIL_VERIFICATION, timedelta(hours=ttl_hours))
        self.notifier.notify(
            NotificationType.EMAIL_VERIFICATION,
            {
                "to": account.email,
                "name": account.name or "User",
                "verification_url": self._link("verify-email", raw_token),
                "expires_in_hours": ttl_hours,
            },
        )
        return "Verification email sent successfully"

    @use_case("verify_email")
    def verify_email(self, token: str) -> str:
        account_id = self.tokens.find_and_consume(token or "", TokenPurpose.EMAIL_VERIFICATION)
        if account_id is None:
            raise BadRequestError(INVALID_VERIFICATION_TOKEN)

        account = self._require_account(account_id)
        if account.email_verified:
            return "Email is already verified"

        self.accounts.set_email_verified(account.id, True)
        logger.info("Email verified for account %s", account.id)
        return "Email verified successfully"

    # --- password reset ---

    @use_case("request_password_reset")
    def request_password_reset(self, email: str) -> str:
        """Send a reset link if the email belongs to an ACTIVE account.

        The returned message is identical whether or not the account exists.
        """
        email = validate_email(email)
        account = self.accounts.find_by_email(email)
        if account is None or account.status != AccountStatus.ACTIVE:
            return RESET_REQUESTED

        if self.tokens.has_recent_token(account.id, TokenPurpose.PASSWORD_RESET, self._cooldown):
            raise TooManyRequestsError(
                "Too many password reset emails sent. Please wait before requesting another."
            )

        ttl_hours = self.settings.PASSWORD_RESET_TTL_HOURS
        raw_token = self.tokens.issue(account.id, TokenPurpose.PASSWORD_RESET, timedelta(hours=ttl_hours))
        self.notifier.notify(
            NotificationType.PASSWORD_RESET,
            {
                "to": account.email,
                "name": account.name or "User",
                "reset_url": self._link("reset-password", raw_token),
                "expires_in_hours": ttl_hours,
            },
        )
        return RESET_REQUESTED

    @use_case("validate_reset_token")
    def validate_reset_token(self, token: str) -> dict[str, str]:
        """Check a reset token without consuming it. Returns the owning email."""
        record = self.tokens.peek(token or "")
        if (
            record is None
            or record.purpose != TokenPurpose.PASSWORD_RESET
            or record.used_at is not None
            or record.expires_at <= utcnow()
        ):
            raise BadRequestError(INVALID_RESET_TOKEN)

        account = self.accounts.find_by_id(record.account_id)
        if account is None or account.status != AccountStatus.ACTIVE:
            raise BadRequestError(INVALID_RESET_TOKEN)
        return {"email": account.email}

    @use_case("confirm_password_reset")
    def confirm_password_reset(self, token: str, new_password: str) -> str:
        validate_password(new_password, field="new_password")
        account_id = self.tokens.find_and_consume(token or "", TokenPurpose.PASSWORD_RESET)
        if account_id is None:
            raise BadRequestError(INVALID_RESET_TOKEN)

        account = self._require_account(account_id)
        if account.status != AccountStatus.ACTIVE:
            raise ForbiddenError("Account is not active")

        self.accounts.set_password(account.id, self.hasher.hash(new_password))
        logger.info("Password reset for account %s", account.id)
        self._notify_best_effort(
            NotificationType.PASSWORD_CHANGED,
            {"to": account.email, "name": account.name or "User"},
            account.id,
        )
        return "Password reset successfully"

    # --- status transitions ---

    def _check_can_suspend(self, account: Account) -> None:
        if account.status == AccountStatus.SUSPENDED:
            raise BadRequestError("User is already suspended")
        if account.status == AccountStatus.DELETED:
            raise BadRequestError("Cannot suspend deleted user")
        if account.role in ADMIN_ROLES:
            raise ForbiddenError("Cannot suspend admin users")

    @use_case("suspend", context="account_id")
    def suspend(self, account_id: str, reason: str, acting_admin_id: str) -> AccountRead:
        """ACTIVE -> SUSPENDED. Admin accounts and the acting admin themselves are protected."""
        if account_id == acting_admin_id:
            raise ForbiddenError("Cannot suspend your own account")
        reason = validate_reason(reason)

        account = self._require_account(account_id)
        self._check_can_suspend(account)

        if not self.accounts.suspend(account.id, reason, acting_admin_id):
            # Lost a race with another transition; report what the account looks like now.
            self._check_can_suspend(self._require_account(account_id))
            raise BadRequestError("User is already suspended")

        logger.info("Account %s suspended by %s", account.id, acting_admin_id)
        self._notify_best_effort(
            NotificationType.ACCOUNT_SUSPENDED,
            {
                "to": account.email,
                "name": account.name or "User",
                "reason": reason,
                "suspended_by": acting_admin_id,
            },
            account.id,
        )
        return AccountRead.model_validate(self._require_account(account.id))

    @use_case("activate", context="account_id")
    def activate(self, account_id: str, acting_admin_id: str, reason: str | None = None) -> AccountRead:
        """SUSPENDED -> ACTIVE, clearing suspension metadata."""
        reason = validate_reason(reason, required=False)
        account = self._require_account(account_id)
        if account.status != AccountStatus.SUSPENDED or not self.accounts.activate(account.id):
            raise BadRequestError("User is not suspended")

        logger.info("Account %s activated by %s", account.id, acting_admin_id)
        self._notify_best_effort(
            NotificationType.ACCOUNT_ACTIVATED,
            {
                "to": account.email,
                "name": account.name or "User",
                "reason": reason,
                "activated_by": acting_admin_id,
            },
            account.id,
        )
        return AccountRead.model_validate(self._require_account(account.id))

    @use_case("get_suspension_details", context="account_id")
    def get_suspension_details(self, account_id: str) -> SuspensionDetails:
        account = self._require_account(account_id)
        return SuspensionDetails(
            is_suspended=account.status == AccountStatus.SUSPENDED,
            suspension_reason=account.suspension_reason,
            suspended_at=account.suspended_at,
            suspended_by=account.suspended_by,
        )

    @use_case("soft_delete", context="account_id")
    def soft_delete(self, account_id: str, acting_admin_id: str | None = None) -> None:
        """Mark an account DELETED. There is no way back, and the email stays reserved."""
        if acting_admin_id is not None and account_id == acting_admin_id:
            raise ForbiddenError("You cannot delete your own account")

        account = self._require_account(account_id)
        if account.status == AccountStatus.DELETED:
            raise NotFoundError("User not found")

        if acting_admin_id is not None and account.role in ADMIN_ROLES:
            actor = self.accounts.find_by_id(acting_admin_id)
            if actor is None or actor.role != Role.SUPER_ADMIN:
                raise ForbiddenError("Insufficient permissions")

        if not self.accounts.soft_delete(account.id):
            raise NotFoundError("User not found")
        logger.info("Account %s deleted by %s", account.id, acting_admin_id or "system")
