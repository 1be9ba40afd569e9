# Auth module for Collabzz
# Provides role-based access control and authentication dependencies

from auth.roles import (
    UserType,
    StaffPermission,
    SELLER_TYPES,
    get_permissions,
    has_permission,
    has_any_permission,
)

from auth.decorators import (
    AuthError,
    require_user_type,
    require_staff,
)

__all__ = [
    # Roles
    "UserType",
    "StaffPermission",
    "SELLER_TYPES",
    "get_permissions",
    "has_permission",
    "has_any_permission",

    # Decorators
    "AuthError",
    "require_user_type",
    "require_staff",
]
