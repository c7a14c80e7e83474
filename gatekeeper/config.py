"""Configuration settings for Gatekeeper."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./gatekeeper.db")

    # Session tokens
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "10080"))
    JWT_ISSUER: str = os.getenv("JWT_ISSUER", "gatekeeper")

    # Password hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Ephemeral tokens
    EMAIL_VERIFICATION_TTL_HOURS: int = int(os.getenv("EMAIL_VERIFICATION_TTL_HOURS", "24"))
    PASSWORD_RESET_TTL_HOURS: int = int(os.getenv("PASSWORD_RESET_TTL_HOURS", "2"))
    TOKEN_RESEND_COOLDOWN_MINUTES: int = int(os.getenv("TOKEN_RESEND_COOLDOWN_MINUTES", "5"))

    # Notifications
    APP_NAME: str = os.getenv("APP_NAME", "Gatekeeper")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    EMAIL_PROVIDER: str = os.getenv("EMAIL_PROVIDER", "console").lower()
    EMAIL_FROM_ADDRESS: str = os.getenv("EMAIL_FROM_ADDRESS", "noreply@gatekeeper.local")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "") or APP_NAME
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    SEND_WELCOME_EMAIL: bool = os.getenv("SEND_WELCOME_EMAIL", "true").lower() == "true"

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def __init__(self) -> None:
        self._generated_secret = not self.JWT_SECRET_KEY
        if self._generated_secret:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self._generated_secret:
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        elif len(self.JWT_SECRET_KEY) < 32:
            errors.append("JWT_SECRET_KEY is shorter than 32 characters")
        if self.EMAIL_PROVIDER not in ("console", "smtp"):
            errors.append(f"Unknown EMAIL_PROVIDER '{self.EMAIL_PROVIDER}' - falling back to console")
        if self.BCRYPT_ROUNDS < 10 and self.APP_ENV == "production":
            errors.append("BCRYPT_ROUNDS below 10 is not recommended in production")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
