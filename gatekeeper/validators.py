"""Input validation rules for account data."""

import re

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_shape

from gatekeeper.errors import ValidationError
from gatekeeper.services.hasher import BCRYPT_MAX_BYTES

EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
NAME_MAX_LENGTH = 100
BIO_MAX_LENGTH = 500
REASON_MAX_LENGTH = 500

_NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
_SPECIAL_CHARS = '!@#$%^&*(),.?":{}|<>'


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _fail(field: str, message: str) -> ValidationError:
    return ValidationError(details=[{"field": field, "message": message}])


def password_problems(password: str) -> list[str]:
    """Return every rule the password breaks, in a stable order."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        problems.append(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    if not any(c in _SPECIAL_CHARS for c in password):
        problems.append("Password must contain at least one special character")
    return problems


def validate_email(email: str, field: str = "email") -> str:
    """Normalize and check an email address. Returns the normalized form."""
    normalized = normalize_email(email or "")
    if not normalized:
        raise _fail(field, "Email is required")
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise _fail(field, f"Email must be less than {EMAIL_MAX_LENGTH} characters")
    try:
        check_email_shape(normalized, check_deliverability=False)
    except EmailNotValidError:
        raise _fail(field, "Invalid email format")
    return normalized


def validate_password(password: str, field: str = "password") -> str:
    problems = password_problems(password or "")
    if problems:
        raise ValidationError(details=[{"field": field, "message": p} for p in problems])
    return password


def validate_name(name: str, field: str = "name") -> str:
    name = name.strip()
    if not name:
        raise _fail(field, "Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise _fail(field, f"Name must be less than {NAME_MAX_LENGTH} characters")
    if not _NAME_RE.match(name):
        raise _fail(field, "Name can only contain letters, spaces, hyphens, and apostrophes")
    return name


def validate_bio(bio: str, field: str = "bio") -> str:
    if len(bio) > BIO_MAX_LENGTH:
        raise _fail(field, f"Bio must be less than {BIO_MAX_LENGTH} characters")
    return bio


def validate_reason(reason: str | None, field: str = "reason", required: bool = True) -> str | None:
    """Check a suspension/activation reason; optional reasons may be blank."""
    reason = (reason or "").strip()
    if not reason:
        if required:
            raise _fail(field, "Reason is required")
        return None
    if len(reason) > REASON_MAX_LENGTH:
        raise _fail(field, f"Reason must be less than {REASON_MAX_LENGTH} characters")
    return reason
