from fastapi import APIRouter, Response
from sqlalchemy import select
import logging

from repairdesk.api.deps import (
    AUTH_COOKIE_NAME,
    DbSession,
    CurrentUser,
    verify_password,
    create_user_token,
)
from repairdesk.config import settings
from repairdesk.exceptions import UnauthorizedError
from repairdesk.models.user import User
from repairdesk.schemas.auth import UserResponse, Token, LoginRequest, AuthMeResponse, VerifyResponse
from repairdesk.schemas.base import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    response: Response,
    login_data: LoginRequest,
    db: DbSession,
):
    """Authenticate user and return JWT token."""
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.info("Failed login attempt", extra={"email": login_data.email})
        raise UnauthorizedError("Incorrect email or password")

    if not user.is_active:
        raise UnauthorizedError("User account is disabled")

    access_token = create_user_token(user)

    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    return Token(access_token=access_token, token=access_token, token_type="bearer")


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Logout user by clearing the auth cookie."""
    response.delete_cookie(key=AUTH_COOKIE_NAME)
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=AuthMeResponse)
async def get_current_user_info(current_user: CurrentUser):
    """Get current authenticated user information."""
    return AuthMeResponse(user=UserResponse.model_validate(current_user))


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(current_user: CurrentUser):
    """Confirm the presented token is still valid."""
    return VerifyResponse(valid=True, user=UserResponse.model_validate(current_user))
