"""Signed, time-limited JWT access and refresh tokens (HMAC-SHA256 by default)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# Refresh tokens are not separately configurable: they live this many access TTLs.
REFRESH_TTL_MULTIPLIER = 24

# Checked by hand against the injected clock, so PyJWT's own time checks are off.
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": ["sub", "iat", "exp"],
}


class TokenError(Exception):
    """Base class for token verification failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidToken(TokenError):
    """Raised when a token is malformed, has a bad signature, or is of the wrong type."""


class ExpiredToken(TokenError):
    """Raised when a token is structurally valid and signed but past its expiry."""


@dataclass(frozen=True)
class TokenConfig:
    """Signing key and lifetimes; built once at startup and never mutated."""

    secret: str
    access_ttl_ms: int
    algorithm: str = "HS256"
    leeway_seconds: int = 0

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("TokenConfig requires a non-empty secret")
        if self.access_ttl_ms <= 0:
            raise ValueError("TokenConfig access_ttl_ms must be positive")

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.access_ttl_ms)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.access_ttl_ms * REFRESH_TTL_MULTIPLIER)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            access_ttl_ms=settings.JWT_EXPIRATION_MS,
            algorithm=settings.JWT_ALGORITHM,
            leeway_seconds=settings.JWT_LEEWAY_SECONDS,
        )


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a token."""

    subject: str
    issued_at: datetime
    expires_at: datetime
    token_type: str | None


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """
    Issue and verify tokens asserting a subject (username).

    Every read of a claim goes through signature verification first; a token
    that fails verification never yields claims.
    """

    def __init__(
        self,
        config: TokenConfig,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._clock = clock

    @property
    def config(self) -> TokenConfig:
        return self._config

    @property
    def expires_in(self) -> int:
        """Access token lifetime in whole seconds."""
        return self._config.access_ttl_ms // 1000

    def issue_access_token(self, subject: str) -> str:
        """Create an access token for subject, valid for the configured TTL."""
        return self._issue(subject, self._config.access_ttl, ACCESS_TOKEN_TYPE)

    def issue_refresh_token(self, subject: str) -> str:
        """Create a refresh token for subject, valid for 24 access TTLs."""
        return self._issue(subject, self._config.refresh_ttl, REFRESH_TOKEN_TYPE)

    def extract_subject(self, token: str) -> str:
        """Return the token's subject. Raises InvalidToken on bad signature or structure."""
        return self._claims(token).subject

    def extract_expiry(self, token: str) -> datetime:
        """Return the token's expiry as an aware UTC datetime. Raises InvalidToken."""
        return self._claims(token).expires_at

    def is_expired(self, token: str) -> bool:
        """True iff the current time is at or after the token's expiry. Raises InvalidToken."""
        return self._is_past(self._claims(token).expires_at)

    def validate(self, token: str, expected_subject: str) -> bool:
        """True iff the signature is valid, the subject matches exactly, and the token is live."""
        try:
            claims = self._claims(token)
        except InvalidToken:
            return False
        return claims.subject == expected_subject and not self._is_past(claims.expires_at)

    def decode(self, token: str, expected_type: str | None = None) -> TokenClaims:
        """
        Strict verification for request authentication.

        Raises InvalidToken for bad signature/structure or a type mismatch,
        ExpiredToken when the token is otherwise valid but expired.
        """
        claims = self._claims(token)
        if expected_type is not None and claims.token_type != expected_type:
            raise InvalidToken(f"Expected a {expected_type} token")
        if self._is_past(claims.expires_at):
            raise ExpiredToken("Token has expired")
        return claims

    def _issue(self, subject: str, ttl: timedelta, token_type: str) -> str:
        if not subject:
            raise ValueError("Token subject must be non-empty")
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": subject,
            "iat": now,
            "exp": now + ttl,
            "type": token_type,
        }
        return jwt.encode(
            payload,
            self._config.secret,
            algorithm=self._config.algorithm,
        )

    def _claims(self, token: str) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise InvalidToken("Token is empty")
        try:
            payload = jwt.decode(
                token,
                self._config.secret,
                algorithms=[self._config.algorithm],
                options=_DECODE_OPTIONS,
            )
        except jwt.PyJWTError as e:
            logger.debug("Token rejected: %s", type(e).__name__)
            raise InvalidToken("Invalid token") from e

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise InvalidToken("Invalid token payload")
        try:
            issued_at = _from_numeric_date(payload["iat"])
            expires_at = _from_numeric_date(payload["exp"])
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise InvalidToken("Invalid token payload") from e
        token_type = payload.get("type")
        return TokenClaims(
            subject=sub,
            issued_at=issued_at,
            expires_at=expires_at,
            token_type=token_type if isinstance(token_type, str) else None,
        )

    def _is_past(self, expires_at: datetime) -> bool:
        leeway = timedelta(seconds=self._config.leeway_seconds)
        return self._clock() >= expires_at + leeway


def _from_numeric_date(value: Any) -> datetime:
    # bool is an int subclass; a JSON true is not a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError("NumericDate must be a number")
    return datetime.fromtimestamp(value, tz=UTC)
