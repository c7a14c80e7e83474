"""Periodic housekeeping tasks.

Run the expired-token sweep from cron or a scheduler with::

    python -m gatekeeper.maintenance
"""

import logging

from sqlalchemy.orm import Session, sessionmaker

from gatekeeper.config import get_settings
from gatekeeper.database import SessionLocal
from gatekeeper.stores.tokens import EphemeralTokenStore

logger = logging.getLogger("gatekeeper.maintenance")


def purge_expired_tokens(session_factory: sessionmaker[Session] = SessionLocal) -> int:
    """Delete every ephemeral token already past expiry. Returns the number removed."""
    db = session_factory()
    try:
        removed = EphemeralTokenStore(db).purge_expired()
    finally:
        db.close()
    logger.info("Purged %d expired tokens", removed)
    return removed


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, get_settings().LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    purge_expired_tokens()


if __name__ == "__main__":
    main()
