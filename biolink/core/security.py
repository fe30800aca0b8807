"""Password hashing and session token helpers."""

import hashlib
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from biolink.core.config import settings


def hash_password(password: str) -> str:
    # SHA-256 pre-hash keeps long passwords under bcrypt's 72 byte limit
    password_hash = hashlib.sha256(password.encode("utf-8")).digest()
    return bcrypt.hashpw(password_hash, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash produced by hash_password."""
    password_hash = hashlib.sha256(plain_password.encode("utf-8")).digest()
    try:
        return bcrypt.checkpw(password_hash, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token for a user.

    Session issuance belongs to the identity provider in front of this
    service; this helper exists for tooling and tests.
    """
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.TOKEN_EXPIRE_MINUTES))
    payload = {"sub": user_id, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a session token.

    Raises:
        ValueError: If the token is expired, malformed or has no subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except jwt.PyJWTError:
        raise ValueError("Invalid token")

    if not payload.get("sub"):
        raise ValueError("Token has no subject")
    return payload
