"""
Authentication endpoints.

Thin on purpose: a password grant issuing JWTs and a "who am I" endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from feedboard.core.auth import CurrentUser, authenticate_user
from feedboard.core.logging import get_logger
from feedboard.core.security import create_access_token
from feedboard.db.deps import DBSession
from feedboard.schemas.auth import Token, UserResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/token",
    response_model=Token,
    summary="Log in",
    description="OAuth2 password grant: exchange email (as username) and password for a bearer token.",
)
async def login_for_access_token(
    db: DBSession,
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    user = await authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        logger.info("login_failed", email=form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("login_succeeded", user_id=user.id)
    return Token(access_token=create_access_token({"sub": user.email}))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def read_current_user(current_user: CurrentUser):
    return UserResponse.model_validate(current_user)
