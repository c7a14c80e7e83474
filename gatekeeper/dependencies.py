"""Service wiring and authentication dependencies for FastAPI routes."""

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from gatekeeper.database import get_db
from gatekeeper.models.account import Role
from gatekeeper.services.gate import AuthorizationGate, RequestContext, extract_bearer_token, require_role
from gatekeeper.services.hasher import get_password_hasher
from gatekeeper.services.jwt import get_jwt_service
from gatekeeper.services.lifecycle import AccountLifecycleService
from gatekeeper.services.notifications import Notifier, get_notifier
from gatekeeper.services.users import UserService
from gatekeeper.stores.accounts import AccountStore
from gatekeeper.stores.tokens import EphemeralTokenStore


def get_lifecycle_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> AccountLifecycleService:
    """Build the lifecycle service around the request's database session."""
    return AccountLifecycleService(
        accounts=AccountStore(db),
        tokens=EphemeralTokenStore(db),
        notifier=notifier,
        hasher=get_password_hasher(),
        jwt_service=get_jwt_service(),
    )


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(AccountStore(db))


def get_current_account(request: Request, db: Session = Depends(get_db)) -> RequestContext:
    """Authenticate the Bearer token. Raises UnauthorizedError if missing or invalid."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    gate = AuthorizationGate(AccountStore(db), get_jwt_service())
    return gate.authenticate(token)


def require_roles(*roles: Role) -> Callable[..., RequestContext]:
    """Dependency factory: authenticate, then require one of ``roles``."""

    def dependency(context: RequestContext = Depends(get_current_account)) -> RequestContext:
        return require_role(context, roles)

    return dependency


require_admin = require_roles(Role.ADMIN, Role.SUPER_ADMIN)
