"""
Sale order lifecycle rules.

Defines the only allowed status transitions for sale orders and which
role may drive each of them. No database writes happen here; the
workflow services in services.py apply a transition after validating it.
"""
from backend.core.exceptions import ApiError
from backend.core.rbac import SALESPERSON, MANAGER, WAREHOUSE

from .models import SaleOrder


class OrderLifecycleError(ApiError):
    pass


class InvalidOrderTransitionError(OrderLifecycleError):
    def __init__(self, message, details=None):
        super().__init__(400, message, details)


TERMINAL_STATES = {
    SaleOrder.STATUS_REJECTED,
    SaleOrder.STATUS_FULFILLED,
    SaleOrder.STATUS_DELIVERED,
}

ALLOWED_TRANSITIONS = {
    SaleOrder.STATUS_DRAFT: {SaleOrder.STATUS_SUBMITTED},
    SaleOrder.STATUS_SUBMITTED: {SaleOrder.STATUS_APPROVED, SaleOrder.STATUS_REJECTED},
    SaleOrder.STATUS_APPROVED: {SaleOrder.STATUS_FULFILLED, SaleOrder.STATUS_PACKING},
    SaleOrder.STATUS_PACKING: {SaleOrder.STATUS_PACKED},
    SaleOrder.STATUS_PACKED: {SaleOrder.STATUS_SHIPPED},
    SaleOrder.STATUS_SHIPPED: {SaleOrder.STATUS_DELIVERED},
}

# Roles allowed to move an order INTO each status. Submission is further
# limited to the order's own salesperson.
TRANSITION_ROLES = {
    SaleOrder.STATUS_SUBMITTED: (SALESPERSON, MANAGER),
    SaleOrder.STATUS_APPROVED: (MANAGER,),
    SaleOrder.STATUS_REJECTED: (MANAGER,),
    SaleOrder.STATUS_FULFILLED: (WAREHOUSE,),
    SaleOrder.STATUS_PACKING: (WAREHOUSE,),
    SaleOrder.STATUS_PACKED: (WAREHOUSE,),
    SaleOrder.STATUS_SHIPPED: (WAREHOUSE,),
    SaleOrder.STATUS_DELIVERED: (WAREHOUSE,),
}

# Error raised when the current status does not allow the requested action
TRANSITION_ERRORS = {
    SaleOrder.STATUS_SUBMITTED: 'Only draft orders can be submitted',
    SaleOrder.STATUS_APPROVED: 'Only submitted orders can be approved',
    SaleOrder.STATUS_REJECTED: 'Only submitted orders can be rejected',
    SaleOrder.STATUS_FULFILLED: 'Only approved orders can be fulfilled',
    SaleOrder.STATUS_PACKING: 'Only approved orders can be moved to packing',
    SaleOrder.STATUS_PACKED: 'Only packing orders can be marked as packed',
    SaleOrder.STATUS_SHIPPED: 'Only packed orders can be marked as shipped',
    SaleOrder.STATUS_DELIVERED: 'Only shipped orders can be marked as delivered',
}


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order: SaleOrder, target_status: str):
    if not can_transition(from_status=order.status, to_status=target_status):
        message = TRANSITION_ERRORS.get(
            target_status,
            f"Order {order.order_number} cannot transition from '{order.status}' to '{target_status}'"
        )
        raise InvalidOrderTransitionError(message)


def roles_for_transition(target_status: str):
    return TRANSITION_ROLES.get(target_status, ())


def allowed_next_statuses(status: str):
    if status in TERMINAL_STATES:
        return set()
    return set(ALLOWED_TRANSITIONS.get(status, set()))
