"""
core/security.py
----------------
Password hashing and JWT token utilities.

Design decisions:
  - bcrypt work factor from settings (12 in production, lowered in tests)
  - JWT payload contains sub (user_id), role and company_id. company_id is
    the *resolved* tenant scope, which differs from the stored company only
    for an impersonating superadmin.
  - Tokens are signed with HS256.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from bikedesk.core.config import settings
from bikedesk.core.errors import TokenExpired, Unauthenticated

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    return pwd_context.verify(plain, hashed)


# ── JWT Utilities ─────────────────────────────────────────────────────────────

def create_access_token(
    subject: str,
    role: str,
    company_id: Optional[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a JWT access token.

    Args:
        subject: User UUID (stored in 'sub' claim).
        role: 'SUPERADMIN' | 'ADMIN' | 'WORKER'
        company_id: Resolved tenant scope, None for an unscoped superadmin.
        expires_delta: Optional custom expiry; defaults to settings value.

    Returns:
        Signed JWT string.
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload: Dict[str, Any] = {
        "sub": subject,
        "role": role,
        "company_id": company_id,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.

    Returns:
        Raw payload dict.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Like decode_access_token, but maps failures onto the API error taxonomy
    so expired tokens can be told apart from tampered ones.
    """
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise Unauthenticated("Invalid token", code="INVALID_TOKEN")

    if not payload.get("sub") or not payload.get("role"):
        raise Unauthenticated("Invalid token", code="INVALID_TOKEN")
    return payload
