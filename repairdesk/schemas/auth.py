from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, Literal

from repairdesk.schemas.base import CamelModel


RoleType = Literal["ADMIN", "TECHNICIAN"]


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class Token(CamelModel):
    """JWT token response. `token` duplicates access_token for older clients."""

    access_token: str
    token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Token payload data."""

    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class UserCreate(CamelModel):
    """Schema for creating a staff user."""

    email: EmailStr
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)
    role: RoleType = "TECHNICIAN"


class UserResponse(CamelModel):
    """Staff user as returned to the front end."""

    id: str
    email: str
    name: str
    role: RoleType
    is_active: bool
    created_at: datetime


class UserSummary(CamelModel):
    id: str
    name: str
    email: str


class AuthMeResponse(CamelModel):
    """Response wrapper for /auth/me."""

    user: UserResponse


class VerifyResponse(CamelModel):
    valid: bool
    user: UserResponse
