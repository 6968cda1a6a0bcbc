from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from typing import Optional
import logging

from repairdesk.api.deps import DbSession, CurrentUser, get_password_hash
from repairdesk.exceptions import ConflictError
from repairdesk.models.user import User, UserRole
from repairdesk.schemas.auth import UserCreate, UserResponse
from repairdesk.security.rbac import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: DbSession,
    current_user: CurrentUser,
    role: Optional[UserRole] = Query(None, description="Filter by role, e.g. TECHNICIAN"),
):
    """List staff users sorted by name (used to pick technicians)."""
    query = select(User).order_by(User.name)
    if role:
        query = query.where(User.role == role.value)
    result = await db.execute(query)
    return result.scalars().all()


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_user(
    user_data: UserCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a staff user (admin only)."""
    existing = await db.execute(select(User).where(User.email == user_data.email))
    if existing.scalar_one_or_none():
        raise ConflictError("Email already registered")

    user = User(
        email=user_data.email,
        name=user_data.name,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.email} created by {current_user.email}", extra={"role": user.role})
    return user
