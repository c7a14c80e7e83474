"""Tests for the account lifecycle service, below the HTTP layer."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import PASSWORD, RecordingNotifier, create_account, make_service
from gatekeeper.database import utcnow
from gatekeeper.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from gatekeeper.models.account import AccountStatus, Role
from gatekeeper.services.lifecycle import AccountLifecycleService
from gatekeeper.services.notifications import NotificationType


class TestRegisterAndLogin:
    def test_register_normalizes_email(self, service: AccountLifecycleService):
        result = service.register("  Mixed@Example.COM ", PASSWORD, "Mixed Case")
        assert result.account.email == "mixed@example.com"
        assert result.account.status == AccountStatus.ACTIVE
        assert result.account.role == Role.USER
        assert service.jwt_service.decode_token(result.token).account_id == result.account.id

    def test_register_duplicate(self, service: AccountLifecycleService):
        service.register("dup@example.com", PASSWORD)
        with pytest.raises(ConflictError):
            service.register("DUP@example.com", PASSWORD)

    def test_register_reports_every_password_rule(self, service: AccountLifecycleService):
        with pytest.raises(ValidationError) as excinfo:
            service.register("rules@example.com", "alllowercase")
        messages = [d["message"] for d in excinfo.value.details]
        assert "Password must contain at least one uppercase letter" in messages
        assert "Password must contain at least one number" in messages
        assert "Password must contain at least one special character" in messages

    def test_register_blank_name_is_none(self, service: AccountLifecycleService):
        assert service.register("blank@example.com", PASSWORD, "   ").account.name is None

    def test_login_errors_are_uniform(self, service: AccountLifecycleService, test_user: dict):
        with pytest.raises(UnauthorizedError) as wrong_password:
            service.login("user@example.com", "Wr0ng!Pass")
        with pytest.raises(UnauthorizedError) as unknown:
            service.login("ghost@example.com", PASSWORD)
        assert wrong_password.value.message == unknown.value.message == "Invalid credentials"

    def test_login_stamps_last_login(self, service: AccountLifecycleService, test_user: dict):
        result = service.login("user@example.com", PASSWORD)
        assert result.account.last_login is not None

    def test_only_successful_login_moves_last_login(self, service: AccountLifecycleService, test_user: dict):
        before = utcnow()
        with pytest.raises(UnauthorizedError) as excinfo:
            service.login("user@example.com", "Wr0ng!Pass")
        assert excinfo.value.message == "Invalid credentials"
        assert service.accounts.find_by_id(test_user["id"]).last_login is None

        result = service.login("user@example.com", PASSWORD)
        assert result.account.last_login > before

    def test_over_long_password_cannot_log_in(self, service: AccountLifecycleService, test_user: dict):
        with pytest.raises(UnauthorizedError):
            service.login("user@example.com", PASSWORD + "x" * 80)

    @pytest.mark.parametrize("email", ["a@b..com", "a..b@example.com", "<x>@example.com", "a@-bad-.com"])
    def test_register_rejects_malformed_email(self, service: AccountLifecycleService, email: str):
        with pytest.raises(ValidationError) as excinfo:
            service.register(email, PASSWORD)
        assert excinfo.value.details == [{"field": "email", "message": "Invalid email format"}]

    def test_register_rejects_over_long_password(self, service: AccountLifecycleService):
        with pytest.raises(ValidationError) as excinfo:
            service.register("long@example.com", "A1!" + "a" * 70)
        assert [d["message"] for d in excinfo.value.details] == ["Password must be at most 72 bytes"]


class TestEmailVerification:
    def test_verify_flow(self, service: AccountLifecycleService, notifier: RecordingNotifier, test_user: dict):
        assert service.request_email_verification(test_user["id"]) == "Verification email sent successfully"
        token = notifier.last_token(NotificationType.EMAIL_VERIFICATION)
        assert service.verify_email(token) == "Email verified successfully"
        assert service.accounts.find_by_id(test_user["id"]).email_verified is True

    def test_bogus_token(self, service: AccountLifecycleService):
        with pytest.raises(BadRequestError):
            service.verify_email("0" * 64)

    def test_unknown_account(self, service: AccountLifecycleService):
        with pytest.raises(NotFoundError):
            service.request_email_verification("missing")

    def test_dispatch_failure_surfaces(
        self, service: AccountLifecycleService, notifier: RecordingNotifier, test_user: dict
    ):
        notifier.failing.add(NotificationType.EMAIL_VERIFICATION)
        with pytest.raises(InternalError):
            service.request_email_verification(test_user["id"])


class TestPasswordReset:
    def test_reset_flow(self, service: AccountLifecycleService, notifier: RecordingNotifier, test_user: dict):
        service.request_password_reset("user@example.com")
        token = notifier.last_token(NotificationType.PASSWORD_RESET)
        assert service.validate_reset_token(token) == {"email": "user@example.com"}
        assert service.confirm_password_reset(token, "N3w!Password") == "Password reset successfully"
        assert service.login("user@example.com", "N3w!Password").token

    def test_verification_token_cannot_reset(
        self, service: AccountLifecycleService, notifier: RecordingNotifier, test_user: dict
    ):
        service.request_email_verification(test_user["id"])
        token = notifier.last_token(NotificationType.EMAIL_VERIFICATION)
        with pytest.raises(BadRequestError):
            service.validate_reset_token(token)
        with pytest.raises(BadRequestError):
            service.confirm_password_reset(token, "N3w!Password")

    def test_password_changed_notice_is_best_effort(
        self, service: AccountLifecycleService, notifier: RecordingNotifier, test_user: dict
    ):
        service.request_password_reset("user@example.com")
        token = notifier.last_token(NotificationType.PASSWORD_RESET)
        notifier.failing.add(NotificationType.PASSWORD_CHANGED)
        assert service.confirm_password_reset(token, "N3w!Password") == "Password reset successfully"


class TestStatusTransitions:
    def test_full_cycle(self, service: AccountLifecycleService, admin: dict, test_user: dict):
        suspended = service.suspend(test_user["id"], "  Spam  ", admin["id"])
        assert suspended.status == AccountStatus.SUSPENDED

        details = service.get_suspension_details(test_user["id"])
        assert details.is_suspended is True
        assert details.suspension_reason == "Spam"
        assert details.suspended_by == admin["id"]

        activated = service.activate(test_user["id"], admin["id"])
        assert activated.status == AccountStatus.ACTIVE
        assert service.get_suspension_details(test_user["id"]).suspension_reason is None

        service.soft_delete(test_user["id"], acting_admin_id=admin["id"])
        assert service.accounts.find_by_id(test_user["id"]).status == AccountStatus.DELETED

    def test_deleted_is_terminal(self, service: AccountLifecycleService, admin: dict, test_user: dict):
        service.soft_delete(test_user["id"])
        with pytest.raises(BadRequestError):
            service.suspend(test_user["id"], "Spam", admin["id"])
        with pytest.raises(BadRequestError):
            service.activate(test_user["id"], admin["id"])
        with pytest.raises(NotFoundError):
            service.soft_delete(test_user["id"])

    def test_suspended_account_can_be_deleted(self, service: AccountLifecycleService, admin: dict, test_user: dict):
        service.suspend(test_user["id"], "Spam", admin["id"])
        service.soft_delete(test_user["id"], acting_admin_id=admin["id"])
        details = service.get_suspension_details(test_user["id"])
        assert details.is_suspended is False
        assert details.suspended_at is None

    def test_reason_too_long(self, service: AccountLifecycleService, admin: dict, test_user: dict):
        with pytest.raises(ValidationError):
            service.suspend(test_user["id"], "x" * 501, admin["id"])

    def test_self_guards(self, service: AccountLifecycleService, admin: dict):
        with pytest.raises(ForbiddenError):
            service.suspend(admin["id"], "Testing", admin["id"])
        with pytest.raises(ForbiddenError):
            service.soft_delete(admin["id"], acting_admin_id=admin["id"])

    def test_missing_account(self, service: AccountLifecycleService, admin: dict):
        with pytest.raises(NotFoundError):
            service.suspend("missing", "Spam", admin["id"])
        with pytest.raises(NotFoundError):
            service.get_suspension_details("missing")


class TestStorageFailures:
    def test_storage_error_becomes_internal(self, service: AccountLifecycleService, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(service.accounts, "find_by_email", broken)
        with pytest.raises(InternalError):
            service.login("user@example.com", PASSWORD)


class TestConcurrency:
    """Concurrent transitions on one account or token have exactly one winner."""

    def _run_concurrently(self, file_sessions, attempts: int, action):
        def attempt(_):
            db = file_sessions()
            try:
                action(make_service(db, RecordingNotifier()))
                return "ok"
            except (BadRequestError, ForbiddenError, NotFoundError) as exc:
                return type(exc).__name__
            finally:
                db.close()

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            return list(pool.map(attempt, range(attempts)))

    def test_verification_token_consumed_once(self, file_sessions):
        setup_db: Session = file_sessions()
        notifier = RecordingNotifier()
        account = create_account(setup_db, "race@example.com")
        make_service(setup_db, notifier).request_email_verification(account["id"])
        token = notifier.last_token(NotificationType.EMAIL_VERIFICATION)
        setup_db.close()

        outcomes = self._run_concurrently(file_sessions, 10, lambda svc: svc.verify_email(token))
        assert outcomes.count("ok") == 1
        assert outcomes.count("BadRequestError") == 9

    def test_suspend_applied_once(self, file_sessions):
        setup_db: Session = file_sessions()
        target = create_account(setup_db, "target@example.com")
        admin = create_account(setup_db, "mod@example.com", role=Role.ADMIN)
        setup_db.close()

        outcomes = self._run_concurrently(
            file_sessions, 8, lambda svc: svc.suspend(target["id"], "Spam", admin["id"])
        )
        assert outcomes.count("ok") == 1
        assert outcomes.count("BadRequestError") == 7
