"""Password hashing for stored credentials."""

from functools import cached_property

import bcrypt

# Bcrypt cost (rounds) used when no explicit cost is configured.
DEFAULT_BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72

# Min/max lengths for username and password validation at the HTTP boundary.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


class PasswordHasher:
    """
    One-way bcrypt hashing with a fresh random salt per call.

    Two hashes of the same password differ; use verify() to compare.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    @cached_property
    def dummy_hash(self) -> str:
        """Hash of a throwaway password at this cost, for verifying against when no account exists."""
        return self.hash("dummy-password-for-unknown-accounts")

    def verify(self, plain_password: str, hashed: str | None) -> bool:
        """Verify a plain password against a stored hash. Malformed hashes never match."""
        if not hashed:
            return False
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False
