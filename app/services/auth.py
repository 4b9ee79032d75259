"""
Authentication flow: register, login, refresh-token rotation, logout and password reset.

Every failure the caller can see is a ServiceError; token problems never leak their cause
beyond "Invalid refresh token" so callers cannot probe which check failed.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, NotFound, ServiceError, TokenError, Unauthorized
from app.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from app.models import Role, User
from app.schemas.auth import AuthResult, FirstLoginResult, SessionMetadata, TokenPair
from app.schemas.users import UserOut, sanitize_user
from app.services.credential_store import CredentialStore
from app.services.token_service import TokenService, as_utc

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
REFRESH_TOKEN_REUSED = "Invalid refresh token - all sessions revoked"


def _subject_id(claims: dict[str, Any]) -> int:
    """Parse the sub claim back to a user id. ValueError if it is not one."""
    return int(claims["sub"])


class AuthService:
    """Per-request auth operations over one database session."""

    def __init__(
        self,
        session: Session,
        tokens: TokenService,
        *,
        password_rounds: int = BCRYPT_ROUNDS,
    ) -> None:
        self.store = CredentialStore(session)
        self.tokens = tokens
        self.password_rounds = password_rounds

    def _result(self, user: User, pair: TokenPair) -> AuthResult:
        return AuthResult(user=sanitize_user(user), **pair.model_dump())

    def _invitation_matches(self, user: User, password: str) -> bool:
        expires_at = user.default_password_expires_at
        if expires_at is not None and as_utc(expires_at) <= self.tokens.now():
            return False
        return verify_password(password, user.default_password_hash)

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Role | None = None,
        metadata: SessionMetadata | None = None,
    ) -> AuthResult:
        """Create an active principal and log it in. Duplicate email -> Conflict."""
        user = User(
            email=email,
            password_hash=hash_password(password, rounds=self.password_rounds),
            first_name=first_name,
            last_name=last_name,
            role=role or Role.PROJECT_MEMBER,
            is_active=True,
        )
        self.store.add_user(user)
        pair = self.tokens.issue_token_pair(user, metadata)
        self.store.commit()
        logger.info("User registered", extra={"user_id": user.id, "role": user.role.value})
        return self._result(user, pair)

    def login(
        self,
        email: str,
        password: str,
        metadata: SessionMetadata | None = None,
    ) -> AuthResult | FirstLoginResult:
        """
        Check credentials and issue a token pair.

        A user holding an invitation password gets FirstLoginResult and no tokens until
        the password is replaced via complete_first_login. Unknown email, wrong password
        and a bad or expired invitation all fail with the same message.
        """
        user = self.store.get_active_user_by_email(email)
        if user is not None and user.default_password_hash:
            if self._invitation_matches(user, password):
                logger.info("Invitation login", extra={"user_id": user.id})
                return FirstLoginResult(user_id=user.id)
            logger.info("Login failed", extra={"user_id": user.id})
            raise Unauthorized(INVALID_CREDENTIALS)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed", extra={"user_id": user.id if user else None})
            raise Unauthorized(INVALID_CREDENTIALS)

        user.last_login = self.tokens.now()
        pair = self.tokens.issue_token_pair(user, metadata)
        self.store.commit()
        logger.info("Login succeeded", extra={"user_id": user.id})
        return self._result(user, pair)

    def refresh(self, raw_refresh_token: str, metadata: SessionMetadata | None = None) -> TokenPair:
        """
        Rotate a refresh token: consume it and issue a new pair.

        A token that verifies but is no longer stored has been used before (or stolen),
        so every session of the principal is revoked.
        """
        try:
            claims = self.tokens.verify_refresh_token(raw_refresh_token)
            user_id = _subject_id(claims)
        except (TokenError, ValueError) as e:
            raise Unauthorized(INVALID_REFRESH_TOKEN) from e

        user = self.store.get_active_user(user_id)
        if user is None:
            raise Unauthorized(INVALID_REFRESH_TOKEN)

        if not self.tokens.consume_refresh_token(user, raw_refresh_token, self.store):
            revoked = self.store.clear_refresh_tokens(user)
            self.store.commit()
            logger.warning(
                "Refresh token reuse detected; all sessions revoked",
                extra={"user_id": user.id, "revoked_sessions": revoked},
            )
            raise Unauthorized(REFRESH_TOKEN_REUSED)

        pair = self.tokens.issue_token_pair(user, metadata)
        self.store.commit()
        return pair

    def logout(self, raw_refresh_token: str) -> None:
        """Drop the session for this refresh token. Best effort: never raises."""
        try:
            claims = self.tokens.verify_refresh_token(raw_refresh_token)
            user = self.store.get_user(_subject_id(claims))
            if user is None:
                return
            if self.tokens.consume_refresh_token(user, raw_refresh_token, self.store):
                self.store.commit()
                logger.info("Logged out", extra={"user_id": user.id})
        except SQLAlchemyError as e:
            self.store.rollback()
            logger.debug("Logout ignored: %s", type(e).__name__)
        except (TokenError, ServiceError, ValueError) as e:
            logger.debug("Logout ignored: %s", type(e).__name__)

    def get_current_user(self, user_id: int) -> UserOut:
        user = self.store.get_active_user(user_id)
        if user is None:
            raise Unauthorized("User not found or inactive")
        return sanitize_user(user)

    def reset_password(self, user_id: int, new_password: str) -> None:
        """Set a new password and revoke every session (and any invitation password)."""
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        if not user.is_active:
            raise Forbidden("User account is inactive")
        self._set_password(user, new_password)
        self.store.commit()
        logger.info("Password reset", extra={"user_id": user.id})

    def _set_password(self, user: User, new_password: str) -> None:
        user.password_hash = hash_password(new_password, rounds=self.password_rounds)
        user.default_password_hash = None
        user.default_password_expires_at = None
        self.store.clear_refresh_tokens(user)

    def complete_first_login(
        self,
        email: str,
        default_password: str,
        new_password: str,
        metadata: SessionMetadata | None = None,
    ) -> AuthResult:
        """Trade a valid invitation password for a real one and log in."""
        user = self.store.get_active_user_by_email(email)
        if (
            user is None
            or not user.default_password_hash
            or not self._invitation_matches(user, default_password)
        ):
            raise Unauthorized(INVALID_CREDENTIALS)

        self._set_password(user, new_password)
        user.last_login = self.tokens.now()
        pair = self.tokens.issue_token_pair(user, metadata)
        self.store.commit()
        logger.info("First login completed", extra={"user_id": user.id})
        return self._result(user, pair)
