"""Single-use, expiring tokens scoped per account and purpose."""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from gatekeeper.database import utcnow
from gatekeeper.models.ephemeral_token import EphemeralToken, TokenPurpose

logger = logging.getLogger("gatekeeper.stores")

TOKEN_BYTES = 32


def token_prefix(raw_token: str) -> str:
    """Loggable form of a bearer secret."""
    return raw_token[:8] + "..."


class EphemeralTokenStore:
    """SQLAlchemy-backed ephemeral token persistence.

    Consumption is a single conditional ``UPDATE ... WHERE used_at IS NULL``
    whose affected-row count decides the winner, so concurrent attempts on
    the same token yield exactly one success.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def issue(self, account_id: str, purpose: TokenPurpose, ttl: timedelta) -> str:
        """Replace unused tokens of this purpose with a fresh one. Returns the raw token."""
        raw_token = secrets.token_hex(TOKEN_BYTES)
        now = utcnow()
        self.db.execute(
            delete(EphemeralToken).where(
                EphemeralToken.account_id == account_id,
                EphemeralToken.purpose == purpose,
                EphemeralToken.used_at.is_(None),
            )
        )
        self.db.add(
            EphemeralToken(
                token=raw_token,
                account_id=account_id,
                purpose=purpose,
                expires_at=now + ttl,
                created_at=now,
            )
        )
        self.db.commit()
        logger.info("Issued %s token for account %s (expires %s)", purpose.value, account_id, now + ttl)
        return raw_token

    def find_and_consume(self, raw_token: str, purpose: TokenPurpose) -> str | None:
        """Atomically mark a valid token used. Returns its account id, or None."""
        now = utcnow()
        result = self.db.execute(
            update(EphemeralToken)
            .where(
                EphemeralToken.token == raw_token,
                EphemeralToken.purpose == purpose,
                EphemeralToken.used_at.is_(None),
                EphemeralToken.expires_at > now,
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            logger.warning("Rejected %s token %s", purpose.value, token_prefix(raw_token))
            return None

        account_id = self.db.execute(
            select(EphemeralToken.account_id).where(EphemeralToken.token == raw_token)
        ).scalar_one()
        self.db.commit()
        logger.info("Consumed %s token for account %s", purpose.value, account_id)
        return account_id

    def peek(self, raw_token: str) -> EphemeralToken | None:
        """Read-only lookup; does not check validity."""
        return self.db.execute(select(EphemeralToken).where(EphemeralToken.token == raw_token)).scalar_one_or_none()

    def has_recent_token(self, account_id: str, purpose: TokenPurpose, within: timedelta) -> bool:
        statement = (
            select(EphemeralToken.token)
            .where(
                EphemeralToken.account_id == account_id,
                EphemeralToken.purpose == purpose,
                EphemeralToken.created_at > utcnow() - within,
            )
            .limit(1)
        )
        return self.db.execute(statement).first() is not None

    def purge_expired(self) -> int:
        """Delete tokens already past expiry. Returns the number removed."""
        result = self.db.execute(
            delete(EphemeralToken)
            .where(EphemeralToken.expires_at < utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount
