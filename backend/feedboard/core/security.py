"""
Security utilities for authentication.

This module provides:
- Password hashing and verification (bcrypt)
- JWT access token creation and validation (python-jose)

Authentication is deliberately thin here: the content core only needs to
know *who* is acting. What they may do is the capability gate's business
(see feedboard.core.permissions).
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from feedboard.core.config import settings

# ================================
# Password Hashing
# ================================
# bcrypt directly: salt is generated per hash and stored inside it.
# Inputs longer than 72 bytes are truncated by bcrypt itself.


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored bcrypt hash.

    Example:
        >>> hashed = get_password_hash("secret")
        >>> verify_password("secret", hashed)
        True
        >>> verify_password("wrong", hashed)
        False
    """
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """
    Hash a plaintext password for storage.

    Hash Format:
    ------------
    $2b$12$R9h/cIPz0gi.URNNX3kh2OPST9/PgBkqquzi.Ss7KIUgO2t0jWMUW
    algorithm ($2b$), cost factor (12), 22-char salt, 31-char hash
    """
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


# ================================
# JWT Access Tokens
# ================================


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to include. "sub" carries the user's email.
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "alice@example.com"})
        >>> decode_access_token(token)["sub"]
        'alice@example.com'
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a JWT access token.

    Returns:
        The claims if the token is valid, None if it is expired, tampered
        with or malformed
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
