"""Password and refresh-token hashing (bcrypt) plus invitation password generation."""

import hashlib
import secrets

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for password validation (input validation).
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

_INVITATION_ADJECTIVES = ("Quick", "Bright", "Swift", "Smart", "Bold", "Calm", "Keen")
_INVITATION_NOUNS = ("Tiger", "Eagle", "Storm", "Ocean", "Mountain", "River", "Falcon")


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _token_digest(raw_token: str) -> bytes:
    # JWTs are longer than bcrypt's 72-byte window and share their header prefix,
    # so bcrypt the SHA-256 hex digest instead of the token itself.
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest().encode("ascii")


def hash_token(raw_token: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Slow one-way hash of a bearer token for storage."""
    return bcrypt.hashpw(_token_digest(raw_token), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_token_hash(raw_token: str, token_hash: str) -> bool:
    """Check a raw bearer token against a stored hash from hash_token."""
    try:
        return bcrypt.checkpw(_token_digest(raw_token), token_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_invitation_password() -> str:
    """
    Generate a memorable one-time password for admin-created accounts, e.g. "SwiftOcean4821".
    Always contains letters and digits so it passes password validation.
    """
    adjective = secrets.choice(_INVITATION_ADJECTIVES)
    noun = secrets.choice(_INVITATION_NOUNS)
    return f"{adjective}{noun}{secrets.randbelow(9000) + 1000}"
