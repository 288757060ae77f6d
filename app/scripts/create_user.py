"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    PasswordHasher,
)
from app.models.user import UserRole
from app.repositories.user_repository import UserRepository
from app.services.accounts import AccountError, AccountManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a Cognify user without the HTTP API.")
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=UserRole.STUDENT.value.lower(),
        help="student, teacher or admin (default: student)",
    )
    parser.add_argument("--first-name", dest="first_name")
    parser.add_argument("--last-name", dest="last_name")
    parser.add_argument("--school-name", dest="school_name")
    parser.add_argument("--phone")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    username = args.username.strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    profile = {
        field: getattr(args, field)
        for field in ("first_name", "last_name", "school_name", "phone")
        if getattr(args, field) is not None
    }

    db = SessionLocal()
    try:
        accounts = AccountManager(
            UserRepository(db), PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)
        )
        try:
            user = accounts.register(
                username=username,
                email=args.email.strip(),
                password=args.password,
                role=args.role,
                profile=profile or None,
            )
        except AccountError as e:
            print(e.message, file=sys.stderr)
            return 1
        print(f"Created user '{user.username}' (id={user.id}) with role '{user.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
