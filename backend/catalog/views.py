from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
import logging

from backend.core.pagination import paginated_response
from backend.core.rbac import MANAGER, require_role
from backend.core.utils import create_audit_log, get_alive_or_404
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, ProductQuerySerializer

logger = logging.getLogger(__name__)


def _audit_product(request, product, action, changes):
    create_audit_log(
        request=request,
        action=action,
        model_name='Product',
        object_id=product.id,
        object_name=product.name,
        object_reference=product.code,
        changes=changes,
    )


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create a new product (managers only)"""
    if request.method == 'GET':
        query = ProductQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        # Use django-filter for filtering
        filterset = ProductFilter(request.query_params, queryset=Product.objects.alive())
        queryset = filterset.qs.order_by('name', 'id')

        return paginated_response(queryset, ProductSerializer, params['page'], params['limit'])
    else:  # POST
        require_role(request.user, [MANAGER])
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            _audit_product(request, product, 'create', {
                'code': product.code,
                'stock_quantity': product.stock_quantity,
            })
            return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    if request.method != 'GET':
        require_role(request.user, [MANAGER])

    product = get_alive_or_404(Product.objects.all(), pk, 'Product not found')

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_stock = product.stock_quantity
            product = serializer.save()
            changes = {key: str(value) for key, value in serializer.validated_data.items()}
            if old_stock != product.stock_quantity:
                changes['previous_stock_quantity'] = old_stock
            _audit_product(request, product, 'update', changes)
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product.soft_delete()
        _audit_product(request, product, 'delete', {'soft_deleted': True})
        logger.info(f"Product {product.code} soft deleted by {request.user.username}")
        return Response({'message': 'Product deleted successfully'})
