"""JWT Token Service."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from gatekeeper.config import get_settings
from gatekeeper.models.account import Role


@dataclass(frozen=True)
class SessionClaims:
    """Verified identity asserted by a session token."""

    account_id: str
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, secret_key: str | None = None) -> None:
        settings = get_settings()
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES

    def create_token(self, account_id: str, email: str, role: Role, ttl: timedelta | None = None) -> str:
        """Create a signed token carrying identity and role claims."""
        issued_at = datetime.now(timezone.utc)
        expire = issued_at + (ttl if ttl is not None else timedelta(minutes=self.expire_minutes))
        payload = {
            "sub": account_id,
            "email": email,
            "role": Role(role).value,
            "iss": self.issuer,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> SessionClaims | None:
        """Decode and validate a token. Returns None on any signature, expiry or shape problem."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm], issuer=self.issuer)
            return SessionClaims(
                account_id=str(payload["sub"]),
                email=str(payload["email"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (JWTError, KeyError, TypeError, ValueError):
            return None


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
