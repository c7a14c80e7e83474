"""API routers."""

from gatekeeper.routers.auth import router as auth_router
from gatekeeper.routers.email import router as email_router
from gatekeeper.routers.users import router as users_router

__all__ = ["auth_router", "email_router", "users_router"]
