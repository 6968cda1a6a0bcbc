# Security module
from repairdesk.security.rbac import Permission, require_admin, require_permission

__all__ = [
    "Permission",
    "require_admin",
    "require_permission",
]
