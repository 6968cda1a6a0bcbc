"""
FastAPI Dependencies

Provides dependency injection for database sessions, authentication and the
notification dispatcher.

SECURITY NOTES:
- JWT payloads are never logged
- Bearer token is the primary auth method
- The `auth-token` cookie set at login is accepted as a fallback
"""

from typing import Annotated
from fastapi import Depends, Cookie
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt
import bcrypt
from datetime import datetime, timedelta, timezone
import logging

from repairdesk.database import get_db, async_session_maker
from repairdesk.exceptions import ForbiddenError, UnauthorizedError
from repairdesk.config import settings
from repairdesk.models.user import User
from repairdesk.schemas.auth import TokenData
from repairdesk.services.email_service import get_email_service
from repairdesk.services.notifier import Notifier

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "auth-token"

# Bearer is the primary auth method; the login cookie is the fallback
bearer = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user: User) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role})


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)] = None,
    cookie_token: Annotated[str | None, Cookie(alias=AUTH_COOKIE_NAME)] = None,
) -> User:
    """Resolve the shop user from the bearer token, falling back to the login cookie."""
    auth_method = "bearer" if credentials else "cookie"
    token = credentials.credentials if credentials else cookie_token
    if not token:
        raise UnauthorizedError()

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        # Never log the token or its payload
        logger.warning("JWT validation failed", extra={"auth_method": auth_method})
        raise UnauthorizedError("Could not validate credentials")

    if payload.get("sub") is None:
        raise UnauthorizedError("Could not validate credentials")
    token_data = TokenData(user_id=str(payload["sub"]), email=payload.get("email"), role=payload.get("role"))

    user = await db.get(User, token_data.user_id)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    if not user.is_active:
        raise ForbiddenError("User account is disabled")

    logger.debug("User authenticated", extra={"user_id": user.id, "auth_method": auth_method})
    return user


def get_notifier() -> Notifier:
    """Notifier with its own session factory; overridden in tests."""
    return Notifier(get_email_service(), async_session_maker)


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
