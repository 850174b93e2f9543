"""
RBAC (Role-Based Access Control) permission system
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Set

from travel_crm.core.errors import ForbiddenError
from travel_crm.models.user import UserRole


class Permission(str, Enum):
    """Permission definitions"""
    # Tenant permissions
    TENANT_MANAGE = "tenant:manage"
    TENANT_VIEW = "tenant:view"

    # Directory permissions
    AGENT_MANAGE = "agent:manage"
    AGENT_VIEW = "agent:view"
    CUSTOMER_VIEW = "customer:view"
    CUSTOMER_MANAGE = "customer:manage"
    SUPPLIER_MANAGE = "supplier:manage"
    ITINERARY_VIEW = "itinerary:view"
    ITINERARY_MANAGE = "itinerary:manage"

    # Quote permissions
    QUOTE_VIEW = "quote:view"
    QUOTE_CREATE = "quote:create"
    QUOTE_EDIT = "quote:edit"
    QUOTE_SEND = "quote:send"
    QUOTE_RESPOND = "quote:respond"
    QUOTE_DELETE = "quote:delete"

    # Booking permissions
    BOOKING_VIEW = "booking:view"
    BOOKING_CREATE = "booking:create"
    BOOKING_EDIT = "booking:edit"
    BOOKING_RECORD_PAYMENT = "booking:record_payment"
    BOOKING_MANAGE_STATUS = "booking:manage_status"

    # Assignment permissions
    ASSIGNMENT_VIEW = "assignment:view"
    ASSIGNMENT_MANAGE = "assignment:manage"
    ASSIGNMENT_UPDATE_STATUS = "assignment:update_status"

    # Expense permissions
    EXPENSE_VIEW = "expense:view"
    EXPENSE_RECORD = "expense:record"
    EXPENSE_PAY = "expense:pay"
    EXPENSE_APPROVE = "expense:approve"
    EXPENSE_DELETE = "expense:delete"

    # Audit permissions
    AUDIT_VIEW = "audit:view"


# Role permission mapping
ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    # Super admins hold every permission
    UserRole.SUPER_ADMIN: frozenset(Permission),
    UserRole.OPERATOR: frozenset(Permission) - {Permission.TENANT_MANAGE},
    UserRole.AGENT: frozenset({
        Permission.TENANT_VIEW,
        Permission.CUSTOMER_VIEW,
        Permission.CUSTOMER_MANAGE,
        Permission.ITINERARY_VIEW,
        Permission.ITINERARY_MANAGE,
        Permission.QUOTE_VIEW,
        Permission.QUOTE_CREATE,
        Permission.QUOTE_EDIT,
        Permission.QUOTE_SEND,
        Permission.QUOTE_RESPOND,
        Permission.QUOTE_DELETE,
        Permission.BOOKING_VIEW,
        Permission.BOOKING_CREATE,
        Permission.BOOKING_EDIT,
        Permission.BOOKING_RECORD_PAYMENT,
        Permission.ASSIGNMENT_VIEW,
        Permission.ASSIGNMENT_UPDATE_STATUS,
        Permission.EXPENSE_VIEW,
        Permission.EXPENSE_RECORD,
    }),
    UserRole.SUPPLIER: frozenset({
        Permission.TENANT_VIEW,
        Permission.ITINERARY_VIEW,
        Permission.ASSIGNMENT_VIEW,
        Permission.ASSIGNMENT_UPDATE_STATUS,
    }),
    UserRole.CUSTOMER: frozenset({
        Permission.TENANT_VIEW,
        Permission.ITINERARY_VIEW,
        Permission.QUOTE_VIEW,
        Permission.QUOTE_RESPOND,
        Permission.BOOKING_VIEW,
    }),
}


def allowed(role: str, required_roles: Iterable[str]) -> bool:
    """True when the role is one of the required roles"""
    required = {UserRole(r) for r in required_roles}
    try:
        return UserRole(role) in required
    except ValueError:
        return False


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get permissions for a given role"""
    try:
        return set(ROLE_PERMISSIONS.get(UserRole(role), frozenset()))
    except ValueError:
        return set()


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions


def can(role: str, permission: Permission) -> bool:
    return has_permission(permission, get_permissions_for_role(role))


def ensure_roles(role: str, *roles: UserRole) -> None:
    if not allowed(role, roles):
        raise ForbiddenError(
            "Access denied. Required role: " + ", ".join(UserRole(r).value for r in roles)
        )


def ensure_permission(role: str, permission: Permission) -> None:
    if not can(role, permission):
        raise ForbiddenError(f"Permission required: {permission.value}")
