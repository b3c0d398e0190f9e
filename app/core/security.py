"""Password hashing and token primitives.

Access tokens are short-lived HS256 JWTs naming the user (``sub``) and
their role. Refresh tokens are opaque; they mean nothing without the
``refresh:{token}`` record kept by ``RefreshTokenStore``.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import secrets
import uuid

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 48

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    # A malformed stored hash counts as a mismatch
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def create_access_token(
    user_id: Any,
    role: Optional[str] = None,
    ttl: Optional[timedelta] = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + (ttl or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired access token; None for anything else."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims


def verify_access_token(token: str) -> Optional[str]:
    """User id carried by ``token``, or None."""
    claims = decode_access_token(token)
    return claims.get("sub") if claims else None


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)
