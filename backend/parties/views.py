from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
import logging

from backend.core.exceptions import ApiError
from backend.core.pagination import paginated_response
from backend.core.rbac import IsSalespersonOrManager, SALESPERSON
from backend.core.utils import create_audit_log, get_alive_or_404
from .models import Customer
from .serializers import CustomerSerializer, CustomerQuerySerializer

logger = logging.getLogger(__name__)


def _customer_queryset(user):
    """Live customers visible to user: salespeople only see their own"""
    queryset = Customer.objects.alive().select_related('created_by')
    if user.role == SALESPERSON:
        queryset = queryset.filter(created_by=user)
    return queryset


def _audit_customer(request, customer, action, changes):
    create_audit_log(
        request=request,
        action=action,
        model_name='Customer',
        object_id=customer.id,
        object_name=customer.name,
        object_reference=customer.email,
        changes=changes,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsSalespersonOrManager])
def customer_list_create(request):
    """List customers or create a new customer"""
    if request.method == 'GET':
        query = CustomerQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        queryset = _customer_queryset(request.user)
        search = (params.get('search') or '').strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(contact_person__icontains=search)
            )
        queryset = queryset.order_by('name', 'id')
        return paginated_response(queryset, CustomerSerializer, params['page'], params['limit'])
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            customer = serializer.save(created_by=request.user)
            _audit_customer(request, customer, 'create', {'name': customer.name, 'email': customer.email})
            return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsSalespersonOrManager])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_alive_or_404(_customer_queryset(request.user), pk, 'Customer not found')

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            _audit_customer(request, customer, 'update', dict(serializer.validated_data))
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if customer.orders.alive().exists():
            raise ApiError(400, 'Cannot delete customer with existing orders')
        customer.soft_delete()
        _audit_customer(request, customer, 'delete', {'soft_deleted': True})
        logger.info(f"Customer {customer.id} soft deleted by {request.user.username}")
        return Response({'message': 'Customer deleted successfully'})
