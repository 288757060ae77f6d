"""Account registration, credential checks and lifecycle (activate, deactivate, update, delete)."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import PasswordHasher
from app.models.user import User, UserRole
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Optional profile attributes accepted at registration and on update.
PROFILE_FIELDS = ("first_name", "last_name", "school_name", "phone")

# Fields update() may copy from its input. password_hash, role, id and
# is_active are deliberately absent.
UPDATABLE_FIELDS = frozenset(("username", "email", *PROFILE_FIELDS))


class AccountErrorKind(str, enum.Enum):
    DUPLICATE_USERNAME = "duplicate_username"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_ROLE = "invalid_role"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_INACTIVE = "account_inactive"
    NOT_FOUND = "not_found"


class AccountError(Exception):
    """Base for account failures; kind and status_code let routers map it to a response."""

    kind: AccountErrorKind
    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DuplicateUsername(AccountError):
    kind = AccountErrorKind.DUPLICATE_USERNAME

    def __init__(self, message: str = "Username already exists") -> None:
        super().__init__(message)


class DuplicateEmail(AccountError):
    kind = AccountErrorKind.DUPLICATE_EMAIL

    def __init__(self, message: str = "Email already exists") -> None:
        super().__init__(message)


class InvalidRole(AccountError):
    kind = AccountErrorKind.INVALID_ROLE


class InvalidCredentials(AccountError):
    """Unknown username and wrong password both end up here, with the same message."""

    kind = AccountErrorKind.INVALID_CREDENTIALS
    status_code = 401

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class AccountInactive(AccountError):
    kind = AccountErrorKind.ACCOUNT_INACTIVE
    status_code = 403

    def __init__(self, message: str = "Account is deactivated") -> None:
        super().__init__(message)


class NotFound(AccountError):
    kind = AccountErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User not found with ID: {user_id}")


class AccountManager:
    """
    Orchestrates account creation and lifecycle on top of UserRepository.

    Every write commits once on success and rolls back on any failure. The
    existence checks before insert/update are advisory; unique constraints in
    the database are what actually enforce uniqueness, and a violation caught
    at flush/commit is reported as the matching Duplicate* error.
    """

    def __init__(self, users: UserRepository, hasher: PasswordHasher) -> None:
        self.users = users
        self.hasher = hasher

    @property
    def session(self) -> Session:
        return self.users.session

    def register(
        self,
        username: str,
        email: str,
        password: str,
        role: str | UserRole,
        profile: Mapping[str, Any] | None = None,
    ) -> User:
        """
        Create an active account with a hashed password. Returns the persisted user.

        The returned User still carries password_hash; callers must not serialize
        it (the HTTP layer exposes accounts only through AccountResponse).
        """
        logger.info("Creating a new user with username: %s", username)

        if self.users.exists_by_username(username):
            logger.warning("Username already exists: %s", username)
            raise DuplicateUsername()
        if self.users.exists_by_email(email):
            logger.warning("Email already exists for registration of %s", username)
            raise DuplicateEmail()
        try:
            canonical_role = UserRole.parse(role)
        except ValueError as e:
            logger.warning("Invalid role: %s", role)
            raise InvalidRole(f"Invalid role: {role}") from e

        user = User(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=canonical_role.value,
            is_active=True,
        )
        if profile:
            for field in PROFILE_FIELDS:
                if field in profile:
                    setattr(user, field, profile[field])

        with self._write(username=username, email=email):
            user = self.users.save(user)

        logger.info(
            "Created user",
            extra={"user_id": user.id, "username": user.username, "role": user.role},
        )
        return user

    def authenticate(self, username: str, password: str) -> User:
        """Return the account whose password matches; InvalidCredentials otherwise."""
        user = self.users.find_by_username(username)
        if user is None:
            # Unknown usernames pay the same bcrypt cost as a wrong password.
            self.hasher.verify(password, self.hasher.dummy_hash)
            logger.info("Authentication failed for username: %s", username)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Authentication failed for username: %s", username)
            raise InvalidCredentials()
        return user

    def get_by_id(self, user_id: int) -> User:
        return self._require(user_id)

    def list_all(self) -> list[User]:
        return self.users.find_all()

    def update(self, user_id: int, fields: Mapping[str, Any]) -> User:
        """
        Merge updatable fields onto an existing account.

        Keys outside UPDATABLE_FIELDS are ignored, so neither the password hash
        nor the role can change through this path. None for username or email
        means "leave unchanged"; None for a profile field clears it.
        """
        user = self._require(user_id)

        ignored = sorted(set(fields) - UPDATABLE_FIELDS)
        if ignored:
            logger.warning(
                "Ignoring non-updatable fields",
                extra={"user_id": user_id, "fields": ignored},
            )
        changes = {
            k: v
            for k, v in fields.items()
            if k in UPDATABLE_FIELDS and not (k in ("username", "email") and v is None)
        }

        new_username = changes.get("username")
        if new_username is not None and new_username != user.username:
            if self.users.exists_by_username(new_username):
                raise DuplicateUsername()
        new_email = changes.get("email")
        if new_email is not None and new_email != user.email:
            if self.users.exists_by_email(new_email):
                raise DuplicateEmail()

        with self._write(
            username=new_username, email=new_email, exclude_id=user_id
        ):
            for key, value in changes.items():
                setattr(user, key, value)
            user = self.users.save(user)

        logger.info("Updated user with ID: %s", user_id)
        return user

    def activate(self, user_id: int) -> User:
        return self._set_active(user_id, True)

    def deactivate(self, user_id: int) -> User:
        return self._set_active(user_id, False)

    def delete(self, user_id: int) -> None:
        user = self._require(user_id)
        with self._write():
            self.users.delete(user)
        logger.info("Deleted user with ID: %s", user_id)

    def _set_active(self, user_id: int, active: bool) -> User:
        user = self._require(user_id)
        with self._write():
            user.is_active = active
            user = self.users.save(user)
        logger.info(
            "%s user with ID: %s", "Activated" if active else "Deactivated", user_id
        )
        return user

    def _require(self, user_id: int) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFound(user_id)
        return user

    @contextmanager
    def _write(
        self,
        username: str | None = None,
        email: str | None = None,
        exclude_id: int | None = None,
    ) -> Iterator[None]:
        """Commit the enclosed writes, or roll all of them back."""
        try:
            yield
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            conflict = self._unique_conflict(username, email, exclude_id)
            if conflict is None:
                raise
            logger.warning("Unique constraint violated: %s", conflict.kind.value)
            raise conflict from e
        except Exception:
            self.session.rollback()
            raise

    def _unique_conflict(
        self,
        username: str | None,
        email: str | None,
        exclude_id: int | None,
    ) -> AccountError | None:
        if username is not None:
            other = self.users.find_by_username(username)
            if other is not None and other.id != exclude_id:
                return DuplicateUsername()
        if email is not None:
            other = self.users.find_by_email(email)
            if other is not None and other.id != exclude_id:
                return DuplicateEmail()
        return None
