"""Access/refresh JWT issuance and verification, and the bounded per-user refresh-token set."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

import jwt

from app.core.errors import ConfigurationError, TokenExpired, TokenInvalid
from app.core.security import BCRYPT_ROUNDS, hash_token, verify_token_hash
from app.models import RefreshToken, Role, User
from app.schemas.auth import SessionMetadata, TokenPair

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.services.credential_store import CredentialStore

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
MAX_REFRESH_TOKENS = 5


class TokenSubject(Protocol):
    id: int
    email: str
    role: Role | str


@dataclass(frozen=True)
class TokenConfig:
    """Immutable signing configuration handed to TokenService at construction."""

    access_secret: str = field(repr=False)
    refresh_secret: str = field(repr=False)
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    max_refresh_tokens: int = MAX_REFRESH_TOKENS
    token_hash_rounds: int = BCRYPT_ROUNDS

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenConfig":
        return cls(
            access_secret=settings.JWT_ACCESS_SECRET.get_secret_value().strip(),
            refresh_secret=settings.JWT_REFRESH_SECRET.get_secret_value().strip(),
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
            max_refresh_tokens=settings.MAX_REFRESH_TOKENS,
            token_hash_rounds=settings.REFRESH_TOKEN_HASH_ROUNDS,
        )


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _role_value(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else str(role)


class TokenService:
    """
    Creates and verifies the two token kinds and manages each user's refresh-token set.

    Access tokens are stateless. Refresh tokens are persisted only as bcrypt hashes,
    at most config.max_refresh_tokens per user, and are single use.
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] | None = None) -> None:
        if not config.access_secret:
            raise ConfigurationError("JWT access secret is not configured")
        if not config.refresh_secret:
            raise ConfigurationError("JWT refresh secret is not configured")
        if config.max_refresh_tokens < 1:
            raise ConfigurationError("max_refresh_tokens must be at least 1")
        self.config = config
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def issue_access_token(self, principal: TokenSubject) -> str:
        """Short-lived token with sub, email and role."""
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": str(principal.id),
            "email": principal.email,
            "role": _role_value(principal.role),
            "type": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": now + self.config.access_ttl,
        }
        return jwt.encode(payload, self.config.access_secret, algorithm=self.config.algorithm)

    def issue_refresh_token(self, user_id: int | str) -> str:
        """Long-lived single-use token. jti keeps same-second tokens distinct."""
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self.config.refresh_ttl,
        }
        return jwt.encode(payload, self.config.refresh_secret, algorithm=self.config.algorithm)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """
        Decode and validate an access token; return its claims.
        Raises TokenExpired on expiry and TokenInvalid on anything else.
        """
        return self._decode(token, self.config.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        """Same as verify_access_token, using the refresh secret."""
        return self._decode(token, self.config.refresh_secret, REFRESH_TOKEN_TYPE)

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        if not isinstance(token, str) or not token.strip():
            raise TokenInvalid("Malformed token")
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.config.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("Token expired") from e
        except jwt.PyJWTError as e:
            raise TokenInvalid("Invalid token") from e
        if claims.get("type") != expected_type:
            raise TokenInvalid("Wrong token type")
        return claims

    def record_refresh_token(
        self,
        principal: User,
        raw_token: str,
        metadata: SessionMetadata | None = None,
    ) -> RefreshToken:
        """
        Store a hash of raw_token on the principal. When the set is full, the oldest
        entries (by created_at) are evicted so the set never exceeds the maximum.
        """
        metadata = metadata or SessionMetadata()
        entries = sorted(principal.refresh_tokens, key=lambda e: as_utc(e.created_at))
        overflow = len(entries) - (self.config.max_refresh_tokens - 1)
        for stale in entries[: max(overflow, 0)]:
            principal.refresh_tokens.remove(stale)

        entry = RefreshToken(
            token_hash=hash_token(raw_token, rounds=self.config.token_hash_rounds),
            created_at=self._clock(),
            ip=metadata.ip,
            user_agent=metadata.user_agent,
        )
        principal.refresh_tokens.append(entry)
        return entry

    def find_refresh_token(self, principal: User, raw_token: str) -> RefreshToken | None:
        """Return the stored entry whose hash matches raw_token, if any."""
        for entry in principal.refresh_tokens:
            if verify_token_hash(raw_token, entry.token_hash):
                return entry
        return None

    def consume_refresh_token(
        self,
        principal: User,
        raw_token: str,
        store: "CredentialStore",
    ) -> bool:
        """
        Remove the entry matching raw_token. False means the token is not live (already
        rotated, revoked, or never issued by us), which callers treat as reuse.
        """
        entry = self.find_refresh_token(principal, raw_token)
        if entry is None:
            return False
        return store.remove_refresh_token(principal, entry)

    def issue_token_pair(
        self,
        principal: User,
        metadata: SessionMetadata | None = None,
    ) -> TokenPair:
        """Issue access + refresh tokens and record the refresh token on the principal."""
        access_token = self.issue_access_token(principal)
        refresh_token = self.issue_refresh_token(principal.id)
        self.record_refresh_token(principal, refresh_token, metadata)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)
