"""
Password hashing and access-token handling.

Both are thin wrappers over passlib and PyJWT; nothing here implements a
cryptographic primitive.
"""
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from conduit.config import settings
from conduit.exceptions import UnauthorizedError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user, expires_delta: timedelta | None = None) -> str:
    """Issue a signed token identifying *user*."""
    now = datetime.now(timezone.utc)
    payload = {
        "uid": user.id,
        "username": user.username,
        "email": user.email,
        "iss": settings.JWT_ISSUER,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES)),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify *token* and return its claims.

    Raises UnauthorizedError for expired, tampered or malformed tokens and
    for tokens without a ``uid`` claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except jwt.PyJWTError:
        raise UnauthorizedError("token", "is invalid, expired, or malformed")
    if not isinstance(payload.get("uid"), int):
        raise UnauthorizedError("token", "is invalid, expired, or malformed")
    return payload
