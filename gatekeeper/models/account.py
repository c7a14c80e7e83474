"""Account model."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String

from gatekeeper.database import Base, utcnow


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class AccountStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def _new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Registered user identity.

    Suspension metadata (``suspension_reason``, ``suspended_at``,
    ``suspended_by``) is populated exactly when ``status`` is SUSPENDED.
    """

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(100), nullable=True)
    bio = Column(String(500), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    role = Column(Enum(Role, native_enum=False, length=16), nullable=False, default=Role.USER)
    status = Column(Enum(AccountStatus, native_enum=False, length=16), nullable=False, default=AccountStatus.ACTIVE)
    email_verified = Column(Boolean, nullable=False, default=False)
    email_verified_at = Column(DateTime, nullable=True)
    suspension_reason = Column(String(500), nullable=True)
    suspended_at = Column(DateTime, nullable=True)
    suspended_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    last_login = Column(DateTime, nullable=True)
