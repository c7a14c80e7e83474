"""Profile and admin user-management service."""

import logging
import math

from gatekeeper.errors import ForbiddenError, NotFoundError, ValidationError
from gatekeeper.models.account import ADMIN_ROLES, AccountStatus, Role
from gatekeeper.schemas.users import AccountRead, Pagination
from gatekeeper.services.gate import RequestContext
from gatekeeper.stores.accounts import SORTABLE_FIELDS, AccountStore
from gatekeeper.validators import validate_bio, validate_name

logger = logging.getLogger("gatekeeper.users")

MAX_PAGE_SIZE = 100


class UserService:
    """Read and edit account profiles; admin listing and statistics."""

    def __init__(self, accounts: AccountStore) -> None:
        self.accounts = accounts

    def get_account(self, account_id: str) -> AccountRead:
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return AccountRead.model_validate(account)

    def get_profile(self, account_id: str) -> AccountRead:
        return self.get_account(account_id)

    def _profile_fields(self, name: str | None, bio: str | None) -> dict:
        # Empty strings clear a field; None leaves it untouched.
        fields = {}
        if name is not None:
            fields["name"] = validate_name(name) if name.strip() else None
        if bio is not None:
            fields["bio"] = validate_bio(bio) if bio.strip() else None
        return fields

    def update_profile(self, account_id: str, name: str | None = None, bio: str | None = None) -> AccountRead:
        fields = self._profile_fields(name, bio)
        if not fields:
            return self.get_account(account_id)
        account = self.accounts.update(account_id, **fields)
        if account is None:
            raise NotFoundError("User not found")
        return AccountRead.model_validate(account)

    def admin_update(
        self,
        account_id: str,
        actor: RequestContext,
        name: str | None = None,
        bio: str | None = None,
        avatar_url: str | None = None,
        role: Role | None = None,
    ) -> AccountRead:
        """Edit another account as an admin.

        Only a SUPER_ADMIN may grant admin roles or touch an admin account, and
        nobody may change their own role. Status is not editable here.
        """
        target = self.accounts.find_by_id(account_id)
        if target is None:
            raise NotFoundError("User not found")

        if role is not None and role != target.role:
            if account_id == actor.account_id:
                raise ForbiddenError("You cannot change your own role")
            if role in ADMIN_ROLES and actor.role != Role.SUPER_ADMIN:
                raise ForbiddenError("Insufficient permissions")
        if target.role in ADMIN_ROLES and account_id != actor.account_id and actor.role != Role.SUPER_ADMIN:
            raise ForbiddenError("Insufficient permissions")

        fields = self._profile_fields(name, bio)
        if avatar_url is not None:
            fields["avatar_url"] = avatar_url.strip() or None
        if role is not None:
            fields["role"] = role
        if not fields:
            return AccountRead.model_validate(target)

        account = self.accounts.update(account_id, **fields)
        if account is None:
            raise NotFoundError("User not found")
        logger.info("Account %s updated by %s (%s)", account_id, actor.account_id, ", ".join(sorted(fields)))
        return AccountRead.model_validate(account)

    def list_accounts(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        search: str | None = None,
        role: Role | None = None,
        status: AccountStatus | None = None,
    ) -> tuple[list[AccountRead], Pagination]:
        problems = []
        if page < 1:
            problems.append({"field": "page", "message": "Page must be at least 1"})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            problems.append({"field": "limit", "message": f"Limit must be between 1 and {MAX_PAGE_SIZE}"})
        if sort_by not in SORTABLE_FIELDS:
            problems.append({"field": "sort_by", "message": f"Cannot sort by '{sort_by}'"})
        if sort_order not in ("asc", "desc"):
            problems.append({"field": "sort_order", "message": "Sort order must be 'asc' or 'desc'"})
        if problems:
            raise ValidationError(details=problems)

        accounts, total = self.accounts.find_many(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            search=search,
            role=role,
            status=status,
        )
        pages = math.ceil(total / limit) if total else 0
        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )
        return [AccountRead.model_validate(a) for a in accounts], pagination

    def account_stats(self) -> dict:
        counts = self.accounts.count_by_role()
        return {
            "total_users": sum(counts.values()),
            "users_by_role": {role.value: count for role, count in counts.items()},
        }
