"""Notification dispatch: typed, templated messages sent to an account's email."""

import logging
import smtplib
from email.message import EmailMessage
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from gatekeeper.config import get_settings

logger = logging.getLogger("gatekeeper.notifications")
mailbox_logger = logging.getLogger("gatekeeper.mailbox")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class NotificationType(str, Enum):
    WELCOME = "welcome"
    EMAIL_VERIFICATION = "email-verification"
    PASSWORD_RESET = "password-reset"
    PASSWORD_CHANGED = "password-changed"
    ACCOUNT_SUSPENDED = "account-suspended"
    ACCOUNT_ACTIVATED = "account-activated"


SUBJECTS = {
    NotificationType.WELCOME: "Welcome to {app_name}",
    NotificationType.EMAIL_VERIFICATION: "Verify your {app_name} account",
    NotificationType.PASSWORD_RESET: "Reset your {app_name} password",
    NotificationType.PASSWORD_CHANGED: "Your {app_name} password was changed",
    NotificationType.ACCOUNT_SUSPENDED: "Your {app_name} account has been suspended",
    NotificationType.ACCOUNT_ACTIVATED: "Your {app_name} account has been reactivated",
}


class NotificationError(Exception):
    """Raised when a notification could not be rendered or delivered."""


class Notifier(Protocol):
    def notify(self, kind: NotificationType, payload: dict[str, Any]) -> None:
        """Send ``kind`` to ``payload["to"]``. Raises NotificationError on failure."""
        ...


class EmailNotifier:
    """Renders notification templates; subclasses decide how messages are delivered."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def build_message(self, kind: NotificationType, payload: dict[str, Any]) -> EmailMessage:
        if "to" not in payload:
            raise NotificationError(f"Notification '{kind.value}' has no recipient")
        context = {"app_name": self.settings.APP_NAME, "name": "User", **payload}
        try:
            body = self.env.get_template(f"{kind.value}.txt").render(**context)
        except TemplateError as exc:
            raise NotificationError(f"Failed to render '{kind.value}' notification") from exc

        message = EmailMessage()
        message["Subject"] = SUBJECTS[kind].format(app_name=self.settings.APP_NAME)
        message["From"] = f"{self.settings.EMAIL_FROM_NAME} <{self.settings.EMAIL_FROM_ADDRESS}>"
        message["To"] = payload["to"]
        message.set_content(body)
        return message

    def deliver(self, message: EmailMessage) -> None:
        raise NotImplementedError

    def notify(self, kind: NotificationType, payload: dict[str, Any]) -> None:
        message = self.build_message(kind, payload)
        self.deliver(message)
        logger.info("Notification %s sent to %s", kind.value, payload["to"])


class ConsoleNotifier(EmailNotifier):
    """Development transport: writes each message to the ``gatekeeper.mailbox`` log."""

    def deliver(self, message: EmailMessage) -> None:
        mailbox_logger.info(
            "To: %s\nSubject: %s\n\n%s", message["To"], message["Subject"], message.get_content()
        )


class SmtpNotifier(EmailNotifier):
    """Delivers messages through the configured SMTP server."""

    def deliver(self, message: EmailMessage) -> None:
        settings = self.settings
        try:
            with smtplib.SMTP(host=settings.SMTP_HOST, port=settings.SMTP_PORT, timeout=10) as smtp:
                if settings.SMTP_USE_TLS:
                    smtp.starttls()
                if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                    smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError("Failed to send email") from exc


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Get singleton notifier for the configured EMAIL_PROVIDER."""
    global _notifier
    if _notifier is None:
        if get_settings().EMAIL_PROVIDER == "smtp":
            _notifier = SmtpNotifier()
        else:
            _notifier = ConsoleNotifier()
    return _notifier
