"""
Role-Based Access Control (RBAC) Module

Maps the two staff roles to permissions and provides FastAPI dependencies
for destructive or administrative endpoints.
"""

from enum import Enum
from typing import Set
import logging

from repairdesk.api.deps import CurrentUser
from repairdesk.exceptions import ForbiddenError
from repairdesk.models.user import User, UserRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """Fine-grained permissions."""
    VIEW_SERVICES = "view_services"
    EDIT_SERVICES = "edit_services"
    DELETE_SERVICES = "delete_services"
    VIEW_CUSTOMERS = "view_customers"
    EDIT_CUSTOMERS = "edit_customers"
    DELETE_CUSTOMERS = "delete_customers"
    MANAGE_FINANCE = "manage_finance"
    SEND_NOTIFICATIONS = "send_notifications"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"


# Role-to-permissions mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.TECHNICIAN: {
        Permission.VIEW_SERVICES,
        Permission.EDIT_SERVICES,
        Permission.VIEW_CUSTOMERS,
        Permission.EDIT_CUSTOMERS,
        Permission.MANAGE_FINANCE,
        Permission.SEND_NOTIFICATIONS,
        Permission.VIEW_REPORTS,
    },
    UserRole.ADMIN: set(Permission),  # All permissions
}


def get_user_role(user: User) -> UserRole:
    """Unknown role strings fall back to the least privileged role."""
    try:
        return UserRole(user.role)
    except ValueError:
        return UserRole.TECHNICIAN


def get_user_permissions(user: User) -> Set[Permission]:
    """Get all permissions for a user based on their role."""
    return ROLE_PERMISSIONS.get(get_user_role(user), set())


def has_permission(user: User, permission: Permission) -> bool:
    """Check if user has a specific permission."""
    return permission in get_user_permissions(user)


def require_permission(permission: Permission):
    """
    Dependency factory for requiring a specific permission.

    Usage:
        @router.delete("/{service_id}")
        async def delete_service(
            current_user: CurrentUser,
            _: None = Depends(require_permission(Permission.DELETE_SERVICES))
        ):
            ...
    """
    def checker(current_user: CurrentUser) -> None:
        if not has_permission(current_user, permission):
            logger.warning(
                f"Permission denied: user {current_user.id} lacks {permission.value}",
                extra={"user_id": current_user.id, "permission": permission.value}
            )
            raise ForbiddenError(f"Permission denied: requires {permission.value}")
    return checker


def require_admin(current_user: CurrentUser) -> None:
    """Dependency for requiring the ADMIN role."""
    role = get_user_role(current_user)
    if role != UserRole.ADMIN:
        logger.warning(
            f"Admin access denied for user {current_user.id}",
            extra={"user_id": current_user.id, "role": role.value}
        )
        raise ForbiddenError("Admin access required")
