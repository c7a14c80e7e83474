"""Persistent account records and their status transitions."""

import logging

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gatekeeper.database import utcnow
from gatekeeper.errors import ConflictError
from gatekeeper.models.account import ADMIN_ROLES, Account, AccountStatus, Role
from gatekeeper.validators import normalize_email

logger = logging.getLogger("gatekeeper.stores")

UPDATABLE_FIELDS = frozenset({"name", "bio", "avatar_url", "role"})
SORTABLE_FIELDS = {
    "created_at": Account.created_at,
    "updated_at": Account.updated_at,
    "name": Account.name,
    "email": Account.email,
}


class AccountStore:
    """SQLAlchemy-backed account persistence.

    Methods that mutate a single account return ``False``/``None`` when the
    account does not exist (or is not in the expected state); deciding which
    domain error that means is left to the caller. Every mutation stamps
    ``updated_at``.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        email: str,
        password_hash: str,
        name: str | None = None,
        role: Role = Role.USER,
    ) -> Account:
        """Insert a new ACTIVE account. Raises ConflictError on duplicate email."""
        normalized = normalize_email(email)
        if self.exists_by_email(normalized):
            raise ConflictError("Email is already registered")

        now = utcnow()
        account = Account(
            email=normalized,
            password_hash=password_hash,
            name=name,
            role=role,
            status=AccountStatus.ACTIVE,
            email_verified=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Email is already registered") from exc
        self.db.refresh(account)
        return account

    def find_by_id(self, account_id: str) -> Account | None:
        return self.db.get(Account, account_id)

    def find_by_email(self, email: str) -> Account | None:
        statement = select(Account).where(Account.email == normalize_email(email))
        return self.db.execute(statement).scalar_one_or_none()

    def exists_by_email(self, email: str) -> bool:
        statement = select(Account.id).where(Account.email == normalize_email(email)).limit(1)
        return self.db.execute(statement).first() is not None

    def _update_where(self, account_id: str, *conditions, **values) -> bool:
        statement = (
            update(Account)
            .where(Account.id == account_id, *conditions)
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(statement)
        self.db.commit()
        return result.rowcount == 1

    def update(self, account_id: str, **fields) -> Account | None:
        """Update profile/role fields. Returns the refreshed account or None if absent."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        if not self._update_where(account_id, **fields):
            return None
        return self.find_by_id(account_id)

    def set_password(self, account_id: str, password_hash: str) -> bool:
        return self._update_where(account_id, password_hash=password_hash)

    def set_email_verified(self, account_id: str, verified: bool) -> bool:
        return self._update_where(
            account_id,
            email_verified=verified,
            email_verified_at=utcnow() if verified else None,
        )

    def stamp_last_login(self, account_id: str) -> bool:
        return self._update_where(account_id, last_login=utcnow())

    def suspend(self, account_id: str, reason: str, suspended_by: str) -> bool:
        """ACTIVE -> SUSPENDED for non-admin accounts, as one conditional update."""
        return self._update_where(
            account_id,
            Account.status == AccountStatus.ACTIVE,
            Account.role.not_in(list(ADMIN_ROLES)),
            status=AccountStatus.SUSPENDED,
            suspension_reason=reason,
            suspended_at=utcnow(),
            suspended_by=suspended_by,
        )

    def activate(self, account_id: str) -> bool:
        """SUSPENDED -> ACTIVE, clearing suspension metadata."""
        return self._update_where(
            account_id,
            Account.status == AccountStatus.SUSPENDED,
            status=AccountStatus.ACTIVE,
            suspension_reason=None,
            suspended_at=None,
            suspended_by=None,
        )

    def soft_delete(self, account_id: str) -> bool:
        """Mark an account DELETED. The email stays reserved."""
        return self._update_where(
            account_id,
            Account.status != AccountStatus.DELETED,
            status=AccountStatus.DELETED,
            suspension_reason=None,
            suspended_at=None,
            suspended_by=None,
        )

    def count_by_role(self) -> dict[Role, int]:
        counts = {role: 0 for role in Role}
        statement = select(Account.role, func.count(Account.id)).group_by(Account.role)
        for role, count in self.db.execute(statement):
            counts[role] = count
        return counts

    def find_many(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        search: str | None = None,
        role: Role | None = None,
        status: AccountStatus | None = None,
    ) -> tuple[list[Account], int]:
        """Return one page of accounts matching the filters plus the total match count."""
        query = select(Account)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Account.email.ilike(pattern), Account.name.ilike(pattern)))
        if role is not None:
            query = query.where(Account.role == role)
        if status is not None:
            query = query.where(Account.status == status)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0

        sort_column = SORTABLE_FIELDS.get(sort_by, Account.created_at)
        query = query.order_by(sort_column.asc() if sort_order == "asc" else sort_column.desc())
        query = query.offset((page - 1) * limit).limit(limit)
        return list(self.db.execute(query).scalars().all()), total
