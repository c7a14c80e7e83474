"""Tests for the authorization gate."""

import pytest
from sqlalchemy.orm import Session

from gatekeeper.errors import ForbiddenError, UnauthorizedError
from gatekeeper.models.account import AccountStatus, Role
from gatekeeper.services.gate import AuthorizationGate, RequestContext, extract_bearer_token, require_role
from gatekeeper.services.jwt import get_jwt_service
from gatekeeper.stores.accounts import AccountStore


@pytest.fixture(name="gate")
def gate_fixture(db_session: Session) -> AuthorizationGate:
    return AuthorizationGate(AccountStore(db_session), get_jwt_service())


class TestBearerHeader:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", None),
            ("Bearer", None),
            ("Bearer a b", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestAuthenticate:
    def test_active_account(self, gate: AuthorizationGate, test_user: dict):
        context = gate.authenticate(test_user["token"])
        assert context == RequestContext(
            account_id=test_user["id"],
            email="user@example.com",
            role=Role.USER,
            status=AccountStatus.ACTIVE,
        )

    def test_failures_share_one_message(self, gate: AuthorizationGate, db_session: Session, test_user: dict):
        ghost = get_jwt_service().create_token("no-such-account", "ghost@example.com", Role.USER)
        messages = set()
        for token in (None, "garbage", ghost):
            with pytest.raises(UnauthorizedError) as excinfo:
                gate.authenticate(token)
            messages.add(excinfo.value.message)

        AccountStore(db_session).soft_delete(test_user["id"])
        with pytest.raises(UnauthorizedError) as excinfo:
            gate.authenticate(test_user["token"])
        messages.add(excinfo.value.message)
        assert messages == {"Invalid or expired token"}


class TestRequireRole:
    def test_allowed(self):
        context = RequestContext("id", "a@example.com", Role.ADMIN, AccountStatus.ACTIVE)
        assert require_role(context, [Role.ADMIN, Role.SUPER_ADMIN]) is context

    def test_forbidden(self):
        context = RequestContext("id", "a@example.com", Role.USER, AccountStatus.ACTIVE)
        with pytest.raises(ForbiddenError):
            require_role(context, [Role.ADMIN])

    def test_unauthenticated(self):
        with pytest.raises(UnauthorizedError):
            require_role(None, [Role.USER])
