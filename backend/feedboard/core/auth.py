"""
Authentication dependencies for FastAPI.

This module provides:
- OAuth2 password bearer scheme
- Credential checking for the token endpoint
- Dependencies resolving the acting user

Display, act and show accept anonymous requests (screens are often not
logged in), so they use ``get_current_user_optional``; the capability gate
then decides what an anonymous actor may see.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedboard.core.config import settings
from feedboard.core.security import decode_access_token, verify_password
from feedboard.db.deps import get_db
from feedboard.models.user import User

# ================================
# OAuth2 Configuration
# ================================

# Extracts "Authorization: Bearer <token>"; tokenUrl is our login endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")

# Same, but yields None instead of raising 401 when the header is missing
optional_oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/token",
    auto_error=False,
)


# ================================
# Authentication Functions
# ================================

async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """
    Authenticate a user by email and password.

    Failed logins don't reveal whether the email or the password was wrong.

    Returns:
        User object if authentication succeeds, None otherwise
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None

    user.last_login = datetime.now(timezone.utc)
    await db.commit()
    return user


async def _user_from_token(db: AsyncSession, token: str) -> User | None:
    payload = decode_access_token(token)
    if payload is None:
        return None

    # "sub" carries the user's email
    email: str | None = payload.get("sub")
    if email is None:
        return None

    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from the JWT token.

    Raises:
        HTTPException 401: token invalid, expired, or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = await _user_from_token(db, token)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get the current user and verify they are active.

    Raises:
        HTTPException 400: If user account is disabled
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user


async def get_current_user_optional(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User | None:
    """
    The authenticated user, or None for anonymous requests.

    A token that is present but invalid is still rejected with 401.
    """
    if token is None:
        return None

    user = await _user_from_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_active_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]
