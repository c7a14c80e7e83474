"""Pydantic schemas for account views and admin user management."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from gatekeeper.models.account import AccountStatus, Role


class AccountRead(BaseModel):
    """Outward view of an account; never carries the password digest."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    role: Role
    status: AccountStatus
    email_verified: bool
    email_verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None = None


class SuspendRequest(BaseModel):
    reason: str


class ActivateRequest(BaseModel):
    reason: str | None = None


class AdminUpdateRequest(BaseModel):
    name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    role: Role | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool
