"""Persistence contract for principals and their refresh-token sessions."""

import logging

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Conflict
from app.models import RefreshToken, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are the login key and compare case-insensitively."""
    return email.strip().lower()


class CredentialStore:
    """
    Loads and saves User rows for the auth flow.

    Inactive users are invisible to the get_active_* lookups. Refresh-token removal
    goes through single-row DELETE statements so concurrent rotations cannot both
    succeed on the same token.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_active_user(self, user_id: int) -> User | None:
        user = self.get_user(user_id)
        if user is None or not user.is_active:
            return None
        return user

    def get_active_user_by_email(self, email: str) -> User | None:
        return (
            self.session.query(User)
            .filter(User.email == normalize_email(email), User.is_active.is_(True))
            .first()
        )

    def email_exists(self, email: str) -> bool:
        return (
            self.session.query(User.id)
            .filter(User.email == normalize_email(email))
            .first()
            is not None
        )

    def add_user(self, user: User) -> User:
        """Insert a new user and flush so it gets an id. Duplicate email -> Conflict."""
        user.email = normalize_email(user.email)
        if self.email_exists(user.email):
            raise Conflict(
                "Email already registered",
                details=[{"field": "email", "issue": "Already exists"}],
            )
        self.session.add(user)
        try:
            self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email.
            self.session.rollback()
            raise Conflict(
                "Email already registered",
                details=[{"field": "email", "issue": "Already exists"}],
            ) from e
        return user

    def remove_refresh_token(self, user: User, entry: RefreshToken) -> bool:
        """Delete exactly this stored token. False if another request already removed it."""
        if entry.id is None:
            self.session.flush()
        result = self.session.execute(
            delete(RefreshToken).where(
                RefreshToken.id == entry.id,
                RefreshToken.user_id == user.id,
            )
        )
        self.session.expire(user, ["refresh_tokens"])
        return result.rowcount == 1

    def clear_refresh_tokens(self, user: User) -> int:
        """Revoke every session of the user. Returns the number of tokens removed."""
        self.session.flush()
        result = self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user.id)
        )
        self.session.expire(user, ["refresh_tokens"])
        return result.rowcount

    def commit(self) -> None:
        """Commit the unit of work; roll back and re-raise on database errors."""
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Credential store commit failed")
            raise

    def rollback(self) -> None:
        self.session.rollback()
