"""
Sale order write operations.

Every operation runs in a single database transaction with the order row
locked, so an order, its items, product stock and the status history are
always written together or not at all.
"""
from django.db import transaction
from django.db.models import F
import logging

from backend.catalog.models import Product
from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_dashboard_cache
from backend.core.exceptions import ApiError
from backend.core.rbac import SALESPERSON, MANAGER, require_role, get_user_role, same_user

from . import notifications
from .lifecycle import validate_transition, roles_for_transition
from .models import SaleOrder, OrderItem, OrderStatusHistory

logger = logging.getLogger(__name__)

NOTES_MAX_LENGTH = 1000

# Statuses in which an order's lines may still be replaced
ITEM_EDITABLE_STATUSES = (
    SaleOrder.STATUS_DRAFT,
    SaleOrder.STATUS_SUBMITTED,
    SaleOrder.STATUS_APPROVED,
)


def _lock_order(order_id):
    order = (
        SaleOrder.objects.select_for_update()
        .filter(pk=order_id, deleted_at__isnull=True)
        .first()
    )
    if order is None:
        raise ApiError(404, 'Order not found')
    return order


def _truncate_notes(notes):
    if notes and isinstance(notes, str):
        return notes[:NOTES_MAX_LENGTH]
    return None


def record_status_change(order, previous_status, new_status, user, notes=None):
    """Append a status history row for order"""
    return OrderStatusHistory.objects.create(
        order=order,
        previous_status=previous_status,
        new_status=new_status,
        changed_by=user,
        notes=_truncate_notes(notes),
    )


def find_stock_issues(order):
    """Lines whose quantity exceeds the product's current stock"""
    stock_issues = []
    for item in order.items.select_related('product'):
        if item.product.stock_quantity < item.quantity:
            stock_issues.append({
                'product': item.product.name,
                'requested': item.quantity,
                'available': item.product.stock_quantity,
            })
    return stock_issues


def _ensure_stock(order):
    stock_issues = find_stock_issues(order)
    if stock_issues:
        raise ApiError(400, 'Insufficient stock for some items', {'stock_issues': stock_issues})


def _build_items(order, items_data):
    """Create order lines from [{product_id, quantity, unit_price}]"""
    product_ids = {item['product_id'] for item in items_data}
    products = Product.objects.alive().in_bulk(product_ids)

    created = []
    for item_data in items_data:
        product = products.get(item_data['product_id'])
        if product is None:
            raise ApiError(400, f"Product {item_data['product_id']} not found")
        created.append(OrderItem.objects.create(
            order=order,
            product=product,
            quantity=item_data['quantity'],
            unit_price=item_data['unit_price'],
            is_in_stock=product.stock_quantity >= item_data['quantity'],
            line_status=OrderItem.LINE_PENDING,
        ))
    return created


def _check_can_modify(order, user, verb):
    """Role/status rules shared by order update and delete"""
    role = get_user_role(user)
    if role == SALESPERSON:
        if not same_user(order.salesperson_id, user.pk):
            raise ApiError(403, 'Access denied')
        if order.status != SaleOrder.STATUS_DRAFT:
            raise ApiError(400, f'Only draft orders can be {verb}')
    elif role == MANAGER:
        if order.status == SaleOrder.STATUS_FULFILLED:
            raise ApiError(400, f'Fulfilled orders cannot be {verb}')
    else:
        raise ApiError(403, 'Access denied')


def create_order(user, order_data, items_data):
    """Create a draft order owned by user"""
    require_role(user, [SALESPERSON, MANAGER])
    with transaction.atomic():
        order = SaleOrder.objects.create(
            salesperson=user,
            status=SaleOrder.STATUS_DRAFT,
            **order_data
        )
        _build_items(order, items_data)
    logger.info(f"Order {order.order_number} created by {user.username} with {len(items_data)} item(s)")
    return order


def update_order(order_id, user, order_data, items_data=None):
    """Update order fields; a non-None items_data replaces every line"""
    with transaction.atomic():
        order = _lock_order(order_id)
        _check_can_modify(order, user, 'updated')

        if items_data is not None:
            if order.status not in ITEM_EDITABLE_STATUSES:
                raise ApiError(400, f'Items of {order.status} orders cannot be replaced')
            if order.items.filter(fulfilled_quantity__gt=0).exists():
                raise ApiError(400, 'Items of a partially fulfilled order cannot be replaced')

        for field, value in order_data.items():
            setattr(order, field, value)
        order.save()

        if items_data is not None:
            order.items.all().delete()
            _build_items(order, items_data)
    logger.info(f"Order {order.order_number} updated by {user.username}")
    return order


def delete_order(order_id, user):
    """Soft delete an order"""
    with transaction.atomic():
        order = _lock_order(order_id)
        _check_can_modify(order, user, 'deleted')
        order.soft_delete()
    logger.info(f"Order {order.order_number} deleted by {user.username}")
    return order


def submit_order(order_id, user, notes=None):
    """Send a draft order for manager approval"""
    require_role(user, roles_for_transition(SaleOrder.STATUS_SUBMITTED))
    with transaction.atomic():
        order = _lock_order(order_id)
        if not same_user(order.salesperson_id, user.pk):
            raise ApiError(403, 'Only the order creator can submit the order')
        validate_transition(order=order, target_status=SaleOrder.STATUS_SUBMITTED)
        _ensure_stock(order)

        previous_status = order.status
        order.status = SaleOrder.STATUS_SUBMITTED
        order.save(update_fields=['status', 'updated_at'])
        record_status_change(order, previous_status, order.status, user, notes or 'Order submitted for approval')
        notifications.notify_order_submitted(order)
    logger.info(f"Order {order.order_number} submitted by {user.username}")
    return order


def approve_order(order_id, user, notes=None):
    """Approve a submitted order after re-checking stock"""
    require_role(user, roles_for_transition(SaleOrder.STATUS_APPROVED))
    with transaction.atomic():
        order = _lock_order(order_id)
        validate_transition(order=order, target_status=SaleOrder.STATUS_APPROVED)
        _ensure_stock(order)

        previous_status = order.status
        order.status = SaleOrder.STATUS_APPROVED
        order.manager = user
        notes = _truncate_notes(notes)
        if notes:
            order.notes = notes
        order.save()
        record_status_change(order, previous_status, order.status, user, notes)
        notifications.notify_order_approved(order)
    logger.info(f"Order {order.order_number} approved by {user.username}")
    return order


def reject_order(order_id, user, notes=None):
    """Reject a submitted order"""
    require_role(user, roles_for_transition(SaleOrder.STATUS_REJECTED))
    with transaction.atomic():
        order = _lock_order(order_id)
        validate_transition(order=order, target_status=SaleOrder.STATUS_REJECTED)

        previous_status = order.status
        order.status = SaleOrder.STATUS_REJECTED
        order.manager = user
        order.save(update_fields=['status', 'manager', 'updated_at'])
        record_status_change(order, previous_status, order.status, user, notes)
        notifications.notify_order_rejected(order, _truncate_notes(notes))
    logger.info(f"Order {order.order_number} rejected by {user.username}")
    return order


def fulfill_order(order_id, user, items_data, notes=None):
    """
    Record (partial) fulfilment of an approved order.

    items_data is a list of {order_item_id, fulfilled_quantity}. Quantities
    are added to what was already fulfilled and deducted from product
    stock. The order moves to fulfilled once every line is complete and
    otherwise stays approved.
    """
    require_role(user, roles_for_transition(SaleOrder.STATUS_FULFILLED))
    with transaction.atomic():
        order = _lock_order(order_id)
        validate_transition(order=order, target_status=SaleOrder.STATUS_FULFILLED)

        order_items = {
            item.id: item
            for item in order.items.select_for_update().select_related('product')
        }

        # Repeated item ids and lines sharing a product are checked on their totals
        requested = {}
        for fulfill_item in items_data:
            item_id = fulfill_item['order_item_id']
            if item_id not in order_items:
                raise ApiError(400, f'Order item {item_id} not found')
            requested[item_id] = requested.get(item_id, 0) + fulfill_item['fulfilled_quantity']

        # Validate every line before touching anything
        updates = []
        per_product = {}
        for item_id, quantity in requested.items():
            order_item = order_items[item_id]
            remaining = order_item.remaining_quantity
            if quantity > remaining:
                raise ApiError(
                    400,
                    f'Cannot fulfill {quantity} of item {order_item.product.name}. Only {remaining} remaining.'
                )
            per_product[order_item.product_id] = per_product.get(order_item.product_id, 0) + quantity
            if per_product[order_item.product_id] > order_item.product.stock_quantity:
                raise ApiError(
                    400,
                    f'Insufficient stock for {order_item.product.name}. '
                    f'Available: {order_item.product.stock_quantity}, '
                    f'Requested: {per_product[order_item.product_id]}'
                )
            updates.append((order_item, quantity))

        with suspend_cache_signals():
            for order_item, quantity in updates:
                if quantity > 0:
                    deducted = Product.objects.filter(
                        pk=order_item.product_id, stock_quantity__gte=quantity
                    ).update(stock_quantity=F('stock_quantity') - quantity)
                    if not deducted:
                        raise ApiError(400, f'Insufficient stock for {order_item.product.name}')

                order_item.fulfilled_quantity += quantity
                if order_item.fulfilled_quantity >= order_item.quantity:
                    order_item.line_status = OrderItem.LINE_FULFILLED
                elif order_item.fulfilled_quantity > 0:
                    order_item.line_status = OrderItem.LINE_PARTIALLY_FULFILLED
                order_item.save(update_fields=['fulfilled_quantity', 'line_status', 'updated_at'])

        fully_fulfilled = all(item.fulfilled_quantity >= item.quantity for item in order_items.values())

        previous_status = order.status
        if fully_fulfilled:
            order.status = SaleOrder.STATUS_FULFILLED
        order.warehouse = user
        order.save(update_fields=['status', 'warehouse', 'updated_at'])

        summary = 'Order fully fulfilled' if fully_fulfilled else 'Order partially fulfilled'
        history_notes = f'{summary}: {notes}' if notes else summary
        record_status_change(order, previous_status, order.status, user, history_notes)
        notifications.notify_order_fulfilled(order, fully_fulfilled)
        transaction.on_commit(invalidate_dashboard_cache)
    logger.info(f"{summary} ({order.order_number}) by {user.username}")
    return order


def _advance_shipping(order_id, user, target_status, notes=None):
    """Move an order one step along approved -> packing -> packed -> shipped -> delivered"""
    require_role(user, roles_for_transition(target_status))
    with transaction.atomic():
        order = _lock_order(order_id)
        validate_transition(order=order, target_status=target_status)

        previous_status = order.status
        order.status = target_status
        if order.warehouse_id is None:
            order.warehouse = user
        notes = _truncate_notes(notes)
        if notes:
            order.notes = notes
        order.save()
        record_status_change(order, previous_status, order.status, user, notes)
    logger.info(f"Order {order.order_number} moved from {previous_status} to {target_status} by {user.username}")
    return order


def start_packing(order_id, user, notes=None):
    return _advance_shipping(order_id, user, SaleOrder.STATUS_PACKING, notes)


def mark_packed(order_id, user, notes=None):
    return _advance_shipping(order_id, user, SaleOrder.STATUS_PACKED, notes)


def mark_shipped(order_id, user, notes=None):
    return _advance_shipping(order_id, user, SaleOrder.STATUS_SHIPPED, notes)


def mark_delivered(order_id, user, notes=None):
    return _advance_shipping(order_id, user, SaleOrder.STATUS_DELIVERED, notes)
