# Role-Based Access Control for Collabzz
# This module defines user roles and staff permissions for the marketplace

from enum import Enum
from typing import Iterable, List, Set


class UserType(str, Enum):
    """User types in the marketplace."""
    BRAND = "brand"
    INFLUENCER = "influencer"
    LIVETV = "livetv"
    BANNER_AGENCY = "banneragency"
    STAFF = "staff"


# Roles that sell to brands
SELLER_TYPES = (UserType.INFLUENCER, UserType.LIVETV, UserType.BANNER_AGENCY)


class StaffPermission(str, Enum):
    """Fine-grained permissions for staff accounts."""
    SUPER_ADMIN = "super_admin"
    USER_MANAGEMENT = "user_management"
    FINANCIAL = "financial"
    COLLABORATIONS = "collaborations"
    KYC = "kyc"
    COMMUNITY = "community"
    SUPPORT = "support"
    MARKETING = "marketing"
    LIVE_HELP = "live_help"
    ANALYTICS = "analytics"


ALL_STAFF_PERMISSIONS: Set[StaffPermission] = set(StaffPermission)


def get_permissions(granted: Iterable[str]) -> Set[StaffPermission]:
    """Resolve stored permission strings; super_admin expands to everything."""
    resolved = set()
    for value in granted or []:
        try:
            resolved.add(StaffPermission(value))
        except ValueError:
            continue
    if StaffPermission.SUPER_ADMIN in resolved:
        return set(ALL_STAFF_PERMISSIONS)
    return resolved


def has_permission(granted: Iterable[str], permission: StaffPermission) -> bool:
    """Check if a set of stored permissions includes a specific permission."""
    return permission in get_permissions(granted)


def has_any_permission(granted: Iterable[str], permissions: List[StaffPermission]) -> bool:
    """Check if a set of stored permissions includes any of the given permissions."""
    resolved = get_permissions(granted)
    return any(p in resolved for p in permissions)
