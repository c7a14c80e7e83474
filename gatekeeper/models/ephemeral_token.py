"""Single-use token model for email verification and password reset."""

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, String

from gatekeeper.database import Base, utcnow


class TokenPurpose(str, enum.Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"


class EphemeralToken(Base):
    """Opaque bearer secret authorizing one follow-up action.

    The raw token string is the primary key; it is valid while ``used_at`` is
    null and ``expires_at`` lies in the future.
    """

    __tablename__ = "ephemeral_token"
    __table_args__ = (Index("ix_ephemeral_token_account_purpose", "account_id", "purpose"),)

    token = Column(String(128), primary_key=True)
    account_id = Column(String(36), ForeignKey("account.id", ondelete="CASCADE"), nullable=False)
    purpose = Column(Enum(TokenPurpose, native_enum=False, length=32), nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
