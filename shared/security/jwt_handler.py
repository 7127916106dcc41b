"""
JWT issuing and verification for storefront and back-office callers.

The auth service that issues tokens lives outside this repository; the
bookstore only needs to verify them. Tokens carry the user id in `sub` and
the user's role (USER | ADMIN) in `role`.
"""
import os
import warnings
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")

if not _SECRET_KEY:
    warnings.warn(
        "JWT_SECRET_KEY is not set. Using an insecure development default. "
        "Set this env var in production!",
        stacklevel=2,
    )
    _SECRET_KEY = "insecure-dev-secret-change-me"

SECRET_KEY: str = _SECRET_KEY
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(data: dict, expires_delta: timedelta = None) -> str:
    """Creates a JWT access token with a UTC expiration."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Decodes and verifies the JWT. Returns payload if valid, None if invalid/expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
