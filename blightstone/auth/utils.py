import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from pwdlib import PasswordHash
from pydantic import BaseModel

from blightstone.auth.settings import auth_settings


password_hash = PasswordHash.recommended()


class AccessTokenClaims(BaseModel):
    account_id: UUID
    session_id: UUID
    expires_at: datetime


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against the stored hash.
    """
    return password_hash.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using the recommended algorithm (Argon2id).
    """
    return password_hash.hash(password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(
    account_id: UUID,
    session_id: UUID,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Create a JWT access token bound to an auth session. Returns (token, expiry)."""
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=auth_settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode = {
        "sub": str(account_id),
        "sid": str(session_id),
        "exp": expire,
        "iat": now,
    }

    encoded_jwt = jwt.encode(
        to_encode,
        auth_settings.JWT_SECRET_KEY,
        algorithm=auth_settings.JWT_ALGORITHM,
    )
    return encoded_jwt, expire


def decode_access_token(token: str, verify_exp: bool = True) -> AccessTokenClaims | None:
    """Decode and validate a JWT access token. Returns None if it is unusable."""
    try:
        payload = jwt.decode(
            token,
            auth_settings.JWT_SECRET_KEY,
            algorithms=[auth_settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
        return AccessTokenClaims(
            account_id=UUID(payload["sub"]),
            session_id=UUID(payload["sid"]),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (JWTError, KeyError, ValueError, TypeError):
        return None


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def hash_refresh_token(token: str) -> str:
    """Refresh tokens are stored as SHA-256 digests only."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_invite_token() -> str:
    """256 bits from the OS CSPRNG, rendered as 64 hex characters."""
    return secrets.token_hex(32)
