"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("FRONTEND_URL", "http://app.test")

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gatekeeper.database import Base, build_engine, get_db
from gatekeeper.models.account import Account, Role  # noqa: F401
from gatekeeper.models.ephemeral_token import EphemeralToken  # noqa: F401
from gatekeeper.services.hasher import get_password_hasher
from gatekeeper.services.jwt import get_jwt_service
from gatekeeper.services.lifecycle import AccountLifecycleService
from gatekeeper.services.notifications import NotificationError, NotificationType, get_notifier
from gatekeeper.stores.accounts import AccountStore
from gatekeeper.stores.tokens import EphemeralTokenStore

PASSWORD = "Str0ng!Pass"


class RecordingNotifier:
    """Notifier double that keeps every message and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[NotificationType, dict]] = []
        self.failing: set[NotificationType] = set()

    def notify(self, kind: NotificationType, payload: dict) -> None:
        if kind in self.failing:
            raise NotificationError(f"{kind.value} unavailable")
        self.sent.append((kind, payload))

    def of_kind(self, kind: NotificationType) -> list[dict]:
        return [payload for sent_kind, payload in self.sent if sent_kind == kind]

    def last_token(self, kind: NotificationType) -> str:
        """Pull the raw token out of the most recent link of ``kind``."""
        payload = self.of_kind(kind)[-1]
        url = payload.get("verification_url") or payload["reset_url"]
        return parse_qs(urlparse(url).query)["token"][0]


def make_service(db: Session, notifier: RecordingNotifier) -> AccountLifecycleService:
    return AccountLifecycleService(
        accounts=AccountStore(db),
        tokens=EphemeralTokenStore(db),
        notifier=notifier,
        hasher=get_password_hasher(),
        jwt_service=get_jwt_service(),
    )


def create_account(db: Session, email: str, role: Role = Role.USER, name: str | None = "Test User") -> dict:
    """Insert an account directly and return its id, email, password and a session token."""
    account = AccountStore(db).create(
        email=email,
        password_hash=get_password_hasher().hash(PASSWORD),
        name=name,
        role=role,
    )
    token = get_jwt_service().create_token(account.id, account.email, account.role)
    return {"id": account.id, "email": account.email, "password": PASSWORD, "token": token}


def auth_header(account: dict) -> dict:
    return {"Authorization": f"Bearer {account['token']}"}


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(name="file_sessions")
def file_sessions_fixture(tmp_path):
    """Session factory over a file-backed SQLite database, for multi-connection tests."""
    engine = build_engine(f"sqlite:///{tmp_path / 'gatekeeper.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


@pytest.fixture(name="notifier")
def notifier_fixture() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(name="service")
def service_fixture(db_session: Session, notifier: RecordingNotifier) -> AccountLifecycleService:
    return make_service(db_session, notifier)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, notifier: RecordingNotifier):
    """Create a test client with overridden DB and notifier dependencies and disabled rate limiting."""
    from gatekeeper.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session) -> dict:
    return create_account(db_session, "user@example.com")


@pytest.fixture(name="admin")
def admin_fixture(db_session: Session) -> dict:
    return create_account(db_session, "admin@example.com", role=Role.ADMIN, name="Admin User")


@pytest.fixture(name="super_admin")
def super_admin_fixture(db_session: Session) -> dict:
    return create_account(db_session, "root@example.com", role=Role.SUPER_ADMIN, name="Super Admin")
