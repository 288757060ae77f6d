"""Repository for the users table. Lookups by unique field return at most one row."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import User


class UserRepository:
    """Data access for user accounts; transaction control stays with the caller."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_by_username(self, username: str) -> User | None:
        return self.session.query(User).filter(User.username == username).first()

    def find_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter(User.email == email).first()

    def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username).limit(1)
        return self.session.execute(stmt).first() is not None

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email).limit(1)
        return self.session.execute(stmt).first() is not None

    def find_all(self) -> list[User]:
        return self.session.query(User).order_by(User.id).all()

    def save(self, user: User) -> User:
        """Insert when the user has no id yet, otherwise update. Flushes so the id is set."""
        if user.id is None:
            self.session.add(user)
        else:
            user = self.session.merge(user)
        self.session.flush()
        return user

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.flush()
