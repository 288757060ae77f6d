"""Tests for app.services.accounts.AccountManager against an in-memory SQLite database."""

import unittest
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import PasswordHasher
from app.models import Base, User, UserRole
from app.repositories.user_repository import UserRepository
from app.services.accounts import (
    AccountErrorKind,
    AccountManager,
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredentials,
    InvalidRole,
    NotFound,
)


def _session_factory() -> sessionmaker:
    """Fresh in-memory database with the users table."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class AccountManagerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = _session_factory()()
        self.hasher = PasswordHasher(rounds=4)
        self.repo = UserRepository(self.session)
        self.accounts = AccountManager(self.repo, self.hasher)

    def tearDown(self) -> None:
        self.session.close()

    def _register(self, username: str = "alice", email: str | None = None, **kwargs) -> User:
        return self.accounts.register(
            username=username,
            email=email or f"{username}@x.com",
            password=kwargs.pop("password", "secret1"),
            role=kwargs.pop("role", "STUDENT"),
            **kwargs,
        )


class TestRegister(AccountManagerTestCase):
    def test_creates_active_account_with_hashed_password(self) -> None:
        user = self._register()
        self.assertIsNotNone(user.id)
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.email, "alice@x.com")
        self.assertEqual(user.role, UserRole.STUDENT.value)
        self.assertTrue(user.is_active)
        self.assertNotEqual(user.password_hash, "secret1")
        self.assertTrue(self.hasher.verify("secret1", user.password_hash))

    def test_role_matched_case_insensitively(self) -> None:
        self.assertEqual(self._register("t1", role="teacher").role, "TEACHER")
        self.assertEqual(self._register("a1", role=" Admin ").role, "ADMIN")
        self.assertEqual(self._register("s1", role=UserRole.STUDENT).role, "STUDENT")

    def test_profile_fields_attached(self) -> None:
        user = self._register(
            profile={
                "first_name": "Alice",
                "last_name": "Liddell",
                "school_name": "Wonderland High",
                "phone": "555-0100",
            }
        )
        self.assertEqual(user.first_name, "Alice")
        self.assertEqual(user.last_name, "Liddell")
        self.assertEqual(user.school_name, "Wonderland High")
        self.assertEqual(user.phone, "555-0100")

    def test_profile_is_optional(self) -> None:
        user = self._register()
        self.assertIsNone(user.first_name)
        self.assertIsNone(user.phone)

    def test_duplicate_username(self) -> None:
        self._register("alice", "alice@x.com")
        with self.assertRaises(DuplicateUsername) as ctx:
            self._register("alice", "other@x.com")
        self.assertEqual(ctx.exception.kind, AccountErrorKind.DUPLICATE_USERNAME)
        self.assertEqual(ctx.exception.message, "Username already exists")

    def test_duplicate_email(self) -> None:
        self._register("alice", "alice@x.com")
        with self.assertRaises(DuplicateEmail):
            self._register("bob", "alice@x.com")

    def test_invalid_role_persists_nothing(self) -> None:
        with self.assertRaises(InvalidRole) as ctx:
            self._register(role="wizard")
        self.assertEqual(ctx.exception.message, "Invalid role: wizard")
        self.assertEqual(self.repo.find_all(), [])

    def test_duplicate_checked_before_role(self) -> None:
        self._register("alice")
        with self.assertRaises(DuplicateUsername):
            self._register("alice", "new@x.com", role="wizard")

    def test_database_constraint_backstops_username_precheck(self) -> None:
        self._register("alice", "alice@x.com")
        with patch.object(self.repo, "exists_by_username", return_value=False):
            with self.assertRaises(DuplicateUsername):
                self._register("alice", "second@x.com")
        self.assertEqual(len(self.repo.find_all()), 1)

    def test_database_constraint_backstops_email_precheck(self) -> None:
        self._register("alice", "alice@x.com")
        with patch.object(self.repo, "exists_by_email", return_value=False):
            with self.assertRaises(DuplicateEmail):
                self._register("bob", "alice@x.com")
        self.assertEqual([u.username for u in self.repo.find_all()], ["alice"])


class TestAuthenticate(AccountManagerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self._register()

    def test_correct_password(self) -> None:
        user = self.accounts.authenticate("alice", "secret1")
        self.assertEqual(user.id, self.alice.id)

    def test_wrong_password_and_unknown_user_look_the_same(self) -> None:
        with self.assertRaises(InvalidCredentials) as wrong:
            self.accounts.authenticate("alice", "wrong")
        with self.assertRaises(InvalidCredentials) as unknown:
            self.accounts.authenticate("nobody", "secret1")
        self.assertEqual(wrong.exception.message, unknown.exception.message)
        self.assertEqual(wrong.exception.status_code, unknown.exception.status_code)
        self.assertEqual(wrong.exception.kind, unknown.exception.kind)

    def test_unknown_user_still_runs_a_password_check(self) -> None:
        with patch.object(self.hasher, "verify", wraps=self.hasher.verify) as verify:
            with self.assertRaises(InvalidCredentials):
                self.accounts.authenticate("nobody", "secret1")
            with self.assertRaises(InvalidCredentials):
                self.accounts.authenticate("alice", "wrong")
        self.assertEqual(verify.call_count, 2)
        self.assertEqual(verify.call_args_list[0].args, ("secret1", self.hasher.dummy_hash))

    def test_corrupt_stored_hash_fails_closed(self) -> None:
        self.alice.password_hash = "garbage"
        self.session.commit()
        with self.assertRaises(InvalidCredentials):
            self.accounts.authenticate("alice", "secret1")


class TestReads(AccountManagerTestCase):
    def test_get_by_id(self) -> None:
        alice = self._register()
        self.assertEqual(self.accounts.get_by_id(alice.id).username, "alice")

    def test_get_by_id_not_found(self) -> None:
        with self.assertRaises(NotFound) as ctx:
            self.accounts.get_by_id(999)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "User not found with ID: 999")

    def test_list_all(self) -> None:
        self._register("alice")
        self._register("bob")
        self.assertEqual([u.username for u in self.accounts.list_all()], ["alice", "bob"])


class TestUpdate(AccountManagerTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self._register()

    def test_merges_profile_fields(self) -> None:
        user = self.accounts.update(
            self.alice.id, {"first_name": "Alice", "school_name": "Wonderland High"}
        )
        self.assertEqual(user.first_name, "Alice")
        self.assertEqual(user.school_name, "Wonderland High")
        self.assertEqual(user.username, "alice")

    def test_cannot_change_password_role_id_or_status(self) -> None:
        original_id = self.alice.id
        original_hash = self.alice.password_hash
        user = self.accounts.update(
            original_id,
            {
                "id": 42,
                "password_hash": "x",
                "password": "hacked",
                "role": "ADMIN",
                "is_active": False,
                "phone": "555-0101",
            },
        )
        self.assertEqual(user.id, original_id)
        self.assertEqual(user.password_hash, original_hash)
        self.assertEqual(user.role, "STUDENT")
        self.assertTrue(user.is_active)
        self.assertEqual(user.phone, "555-0101")
        self.assertIsNone(self.repo.find_by_id(42))

    def test_change_username_and_email(self) -> None:
        user = self.accounts.update(
            self.alice.id, {"username": "alice2", "email": "alice2@x.com"}
        )
        self.assertEqual(user.username, "alice2")
        self.assertEqual(self.repo.find_by_email("alice2@x.com").id, self.alice.id)

    def test_none_username_leaves_it_unchanged(self) -> None:
        user = self.accounts.update(self.alice.id, {"username": None, "first_name": None})
        self.assertEqual(user.username, "alice")
        self.assertIsNone(user.first_name)

    def test_keeping_own_username_is_not_a_conflict(self) -> None:
        user = self.accounts.update(self.alice.id, {"username": "alice", "phone": "1"})
        self.assertEqual(user.phone, "1")

    def test_username_taken_by_other_account(self) -> None:
        self._register("bob")
        with self.assertRaises(DuplicateUsername):
            self.accounts.update(self.alice.id, {"username": "bob"})

    def test_email_taken_by_other_account(self) -> None:
        self._register("bob")
        with self.assertRaises(DuplicateEmail):
            self.accounts.update(self.alice.id, {"email": "bob@x.com"})

    def test_constraint_conflict_rolls_back_whole_update(self) -> None:
        self._register("bob")
        with patch.object(self.repo, "exists_by_email", return_value=False):
            with self.assertRaises(DuplicateEmail):
                self.accounts.update(
                    self.alice.id, {"email": "bob@x.com", "first_name": "Changed"}
                )
        alice = self.accounts.get_by_id(self.alice.id)
        self.assertEqual(alice.email, "alice@x.com")
        self.assertIsNone(alice.first_name)

    def test_not_found(self) -> None:
        with self.assertRaises(NotFound):
            self.accounts.update(999, {"first_name": "x"})


class TestActivation(AccountManagerTestCase):
    def test_deactivate_then_activate(self) -> None:
        alice = self._register()
        self.assertFalse(self.accounts.deactivate(alice.id).is_active)
        self.assertFalse(self.accounts.get_by_id(alice.id).is_active)
        self.assertTrue(self.accounts.activate(alice.id).is_active)
        self.assertTrue(self.accounts.get_by_id(alice.id).is_active)

    def test_repeated_transitions_are_idempotent(self) -> None:
        alice = self._register()
        self.accounts.activate(alice.id)
        self.assertTrue(self.accounts.get_by_id(alice.id).is_active)
        self.accounts.deactivate(alice.id)
        self.accounts.deactivate(alice.id)
        self.assertFalse(self.accounts.get_by_id(alice.id).is_active)

    def test_not_found(self) -> None:
        with self.assertRaises(NotFound):
            self.accounts.activate(999)
        with self.assertRaises(NotFound):
            self.accounts.deactivate(999)


class TestDelete(AccountManagerTestCase):
    def test_delete_removes_account(self) -> None:
        alice = self._register()
        alice_id = alice.id
        self.accounts.delete(alice_id)
        with self.assertRaises(NotFound):
            self.accounts.get_by_id(alice_id)
        self.assertFalse(self.repo.exists_by_username("alice"))

    def test_username_reusable_after_delete(self) -> None:
        alice = self._register()
        self.accounts.delete(alice.id)
        self.assertIsNotNone(self._register().id)

    def test_not_found(self) -> None:
        with self.assertRaises(NotFound):
            self.accounts.delete(999)


if __name__ == "__main__":
    unittest.main()
