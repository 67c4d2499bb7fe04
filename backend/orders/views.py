from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from backend.core.exceptions import ApiError
from backend.core.pagination import paginated_response
from backend.core.rbac import (
    SALESPERSON, MANAGER, WAREHOUSE, WAREHOUSE_VISIBLE_STATUSES,
    can_access_order, get_user_role,
)
from backend.core.utils import create_audit_log, get_alive_or_404
from . import services
from .filters import SaleOrderFilter
from .models import SaleOrder
from .serializers import (
    SaleOrderSerializer, SaleOrderCreateSerializer, SaleOrderUpdateSerializer,
    OrderQuerySerializer, WorkflowActionSerializer, FulfillOrderSerializer,
    OrderStatusHistorySerializer,
)

logger = logging.getLogger(__name__)


def _order_queryset():
    return SaleOrder.objects.alive().select_related(
        'salesperson', 'manager', 'warehouse'
    ).prefetch_related('items', 'items__product')


def _get_accessible_order(request, pk):
    """Fetch a live order the caller may see (404 / 403 otherwise)"""
    order = get_alive_or_404(_order_queryset(), pk, 'Order not found')
    if not can_access_order(get_user_role(request.user), request.user.pk, order):
        raise ApiError(403, 'Access denied')
    return order


def _order_response(order, response_status=status.HTTP_200_OK):
    order = _order_queryset().get(pk=order.pk)
    return Response(SaleOrderSerializer(order).data, status=response_status)


def _audit_order(request, order, action, changes=None):
    create_audit_log(
        request=request,
        action=action,
        model_name='SaleOrder',
        object_id=order.id,
        object_name=order.customer_name,
        object_reference=order.order_number,
        changes=changes or {},
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders visible to the caller or create a draft order"""
    role = get_user_role(request.user)

    if request.method == 'GET':
        query = OrderQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        queryset = _order_queryset()

        # Row-level visibility by role
        if role == SALESPERSON:
            queryset = queryset.filter(salesperson=request.user)
        elif role == WAREHOUSE:
            queryset = queryset.filter(status__in=WAREHOUSE_VISIBLE_STATUSES)
        elif role != MANAGER:
            raise ApiError(403, 'Access denied')

        if 'salesperson_id' in params and role != MANAGER:
            raise ApiError(403, 'Access denied')

        filterset = SaleOrderFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-created_at', '-id')

        return paginated_response(queryset, SaleOrderSerializer, params['page'], params['limit'])
    else:  # POST
        serializer = SaleOrderCreateSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        order_data, items_data = serializer.to_order_data()
        order = services.create_order(request.user, order_data, items_data)
        _audit_order(request, order, 'create', {'status': order.status, 'items': len(items_data)})
        return _order_response(order, status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    if request.method == 'GET':
        order = _get_accessible_order(request, pk)
        return Response(SaleOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SaleOrderUpdateSerializer(data=request.data, partial=True, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        order_data, items_data = serializer.to_order_data()
        order = services.update_order(pk, request.user, order_data, items_data)
        changes = {key: str(value) for key, value in order_data.items()}
        if items_data is not None:
            changes['items'] = len(items_data)
        _audit_order(request, order, 'update', changes)
        return _order_response(order)
    else:  # DELETE
        order = services.delete_order(pk, request.user)
        _audit_order(request, order, 'delete', {'soft_deleted': True})
        return Response({'message': 'Order deleted successfully'})


def _workflow(request, pk, action, audit_action):
    serializer = WorkflowActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    notes = serializer.validated_data.get('notes')

    order = action(pk, request.user, notes)
    _audit_order(request, order, audit_action, {'status': order.status, 'notes': notes or ''})
    return _order_response(order)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_submit(request, pk):
    """Submit a draft order for approval (order owner)"""
    return _workflow(request, pk, services.submit_order, 'order_submit')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_approve(request, pk):
    """Approve a submitted order (managers only)"""
    return _workflow(request, pk, services.approve_order, 'order_approve')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_reject(request, pk):
    """Reject a submitted order (managers only)"""
    return _workflow(request, pk, services.reject_order, 'order_reject')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_fulfill(request, pk):
    """Fulfil some or all lines of an approved order (warehouse only)"""
    serializer = FulfillOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    items = [dict(item) for item in data['items']]
    order = services.fulfill_order(pk, request.user, items, data.get('notes'))
    _audit_order(request, order, 'order_fulfill', {'status': order.status, 'items': items})
    return _order_response(order)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_start_packing(request, pk):
    return _workflow(request, pk, services.start_packing, 'order_pack')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_mark_packed(request, pk):
    return _workflow(request, pk, services.mark_packed, 'order_pack')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_mark_shipped(request, pk):
    return _workflow(request, pk, services.mark_shipped, 'order_ship')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_mark_delivered(request, pk):
    return _workflow(request, pk, services.mark_delivered, 'order_deliver')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_history(request, pk):
    """Status history of an order the caller can access"""
    order = _get_accessible_order(request, pk)
    history = order.status_history.select_related('changed_by').order_by('created_at', 'id')
    return Response(OrderStatusHistorySerializer(history, many=True).data)
