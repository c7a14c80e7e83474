"""Authorization gate: turns a presented session token into a request context.

Authentication re-reads the account on every request, so suspending or
deleting an account revokes its effective access immediately even while its
session token is still cryptographically valid.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from gatekeeper.errors import ForbiddenError, UnauthorizedError
from gatekeeper.models.account import AccountStatus, Role
from gatekeeper.services.jwt import JWTService
from gatekeeper.stores.accounts import AccountStore

INVALID_TOKEN = "Invalid or expired token"


@dataclass(frozen=True)
class RequestContext:
    """Identity of the authenticated caller, taken from the live account record."""

    account_id: str
    email: str
    role: Role
    status: AccountStatus


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


class AuthorizationGate:
    def __init__(self, accounts: AccountStore, jwt_service: JWTService) -> None:
        self.accounts = accounts
        self.jwt_service = jwt_service

    def authenticate(self, token: str | None) -> RequestContext:
        """Verify the token and the backing account. Every failure looks the same."""
        if not token:
            raise UnauthorizedError(INVALID_TOKEN)
        claims = self.jwt_service.decode_token(token)
        if claims is None:
            raise UnauthorizedError(INVALID_TOKEN)

        account = self.accounts.find_by_id(claims.account_id)
        if account is None or account.status != AccountStatus.ACTIVE:
            raise UnauthorizedError(INVALID_TOKEN)

        return RequestContext(
            account_id=account.id,
            email=account.email,
            role=account.role,
            status=account.status,
        )


def require_role(context: RequestContext | None, allowed: Iterable[Role]) -> RequestContext:
    """Reject an authenticated caller whose role is not in ``allowed``."""
    if context is None:
        raise UnauthorizedError("Authentication required")
    if context.role not in set(allowed):
        raise ForbiddenError("Insufficient permissions")
    return context
