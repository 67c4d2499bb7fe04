"""
Role-based access control policy.

Pure functions over (role, user id, order) that every order route consults,
plus DRF permission classes for gating whole endpoints by role.
"""
from rest_framework.permissions import BasePermission

from .exceptions import ApiError

SALESPERSON = 'salesperson'
MANAGER = 'manager'
WAREHOUSE = 'warehouse'
ALL_ROLES = (SALESPERSON, MANAGER, WAREHOUSE)

# Statuses a warehouse user may see: everything from approval onward
WAREHOUSE_VISIBLE_STATUSES = frozenset({'approved', 'packing', 'packed', 'shipped', 'delivered', 'fulfilled'})
WAREHOUSE_EDITABLE_STATUSES = frozenset({'approved', 'packing', 'packed', 'shipped'})


def same_user(a, b):
    if a is None or b is None:
        return False
    return str(a) == str(b)


def can_access_order(user_role, user_id, order):
    """
    Whether a user may view an order.

    `order` only needs `salesperson_id` and `status` attributes.
    """
    if user_role == SALESPERSON:
        return same_user(order.salesperson_id, user_id)
    if user_role == MANAGER:
        return True
    if user_role == WAREHOUSE:
        return order.status in WAREHOUSE_VISIBLE_STATUSES
    return False


def can_edit_order(user_role, user_id, order):
    """Whether a user may act on an order in its current status"""
    if user_role == SALESPERSON:
        return same_user(order.salesperson_id, user_id) and order.status == 'draft'
    if user_role == MANAGER:
        return order.status == 'submitted'
    if user_role == WAREHOUSE:
        return order.status in WAREHOUSE_EDITABLE_STATUSES
    return False


def get_user_role(user):
    if not user or not user.is_authenticated:
        return None
    return getattr(user, 'role', None)


def has_role(user, allowed_roles):
    return get_user_role(user) in allowed_roles


def require_role(user, allowed_roles):
    """Raise a 403 ApiError unless the user holds one of allowed_roles"""
    if not has_role(user, allowed_roles):
        raise ApiError(403, f"Access denied. Required roles: {', '.join(allowed_roles)}")


class RolePermission(BasePermission):
    """Base permission: authenticated user whose role is in allowed_roles"""
    allowed_roles = ()
    message = 'Insufficient permissions'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and has_role(request.user, self.allowed_roles))


class IsManager(RolePermission):
    allowed_roles = (MANAGER,)
    message = 'Access denied. Required roles: manager'


class IsSalespersonOrManager(RolePermission):
    allowed_roles = (SALESPERSON, MANAGER)
    message = 'Access denied. Only salespeople and managers can access customers.'
