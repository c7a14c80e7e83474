"""Password hashing service."""

import bcrypt

from gatekeeper.config import get_settings

# bcrypt cannot take more than 72 bytes of input.
BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    encoded = plaintext.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password is longer than {BCRYPT_MAX_BYTES} bytes")
    return encoded


class PasswordHasher:
    """One-way, salted bcrypt hashing with a tunable work factor."""

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds or get_settings().BCRYPT_ROUNDS

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """Check a password against a stored digest.

        Malformed digests and over-long passwords never match.
        """
        if not digest:
            return False
        try:
            return bcrypt.checkpw(_encode(plaintext), digest.encode("utf-8"))
        except ValueError:
            return False


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher()
    return _password_hasher
