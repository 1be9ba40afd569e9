# Authentication and Authorization Decorators for Collabzz
# These dependencies provide easy-to-use access control for API endpoints

from fastapi import HTTPException, status, Depends

from database.models import User
from auth.roles import UserType, StaffPermission, has_any_permission
from auth.dependencies import get_current_user


class AuthError(HTTPException):
    """Custom exception for authentication/authorization errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


def require_user_type(*allowed_types: UserType):
    """
    Dependency that requires the user to be one of the specified types.
    Staff accounts pass every role check.

    Usage:
        @router.get("/influencer/profile")
        async def get_profile(
            user: User = Depends(require_user_type(UserType.INFLUENCER))
        ):
            ...
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        user_type = _get_user_type(current_user)

        if user_type == UserType.STAFF:
            return current_user

        if user_type not in allowed_types:
            allowed_names = ", ".join(t.value for t in allowed_types)
            raise AuthError(
                detail=f"This endpoint requires user type: {allowed_names}",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return current_user

    return dependency


def require_staff(*permissions: StaffPermission):
    """
    Dependency that requires a staff account holding any of the given
    permissions. With no permissions listed, any staff account passes.

    Usage:
        @router.get("/admin/stats")
        async def get_stats(user: User = Depends(require_staff(StaffPermission.ANALYTICS))):
            ...
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if _get_user_type(current_user) != UserType.STAFF:
            raise AuthError(detail="Staff access required")

        if permissions and not has_any_permission(current_user.staff_permissions, list(permissions)):
            raise AuthError(detail="You don't have permission to perform this action")

        return current_user

    return dependency


def _get_user_type(user: User) -> UserType:
    """Helper to extract UserType from User object."""
    val = user.role.value if hasattr(user.role, "value") else user.role
    return UserType(str(val))
