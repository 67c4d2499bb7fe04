import logging
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, DecimalField
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal

from backend.catalog.models import Product, LOW_STOCK_THRESHOLD
from backend.core.cache_utils import get_cached_dashboard_stats, cache_dashboard_stats
from backend.core.models import User
from backend.orders.models import SaleOrder, OrderItem

logger = logging.getLogger(__name__)

REVENUE_STATUSES = [SaleOrder.STATUS_APPROVED, SaleOrder.STATUS_FULFILLED]
RECENT_ORDERS_DAYS = 7


def compute_dashboard_stats():
    """Headline counts for the dashboard"""
    orders = SaleOrder.objects.alive()
    products = Product.objects.alive()

    total_revenue = OrderItem.objects.filter(
        order__deleted_at__isnull=True,
        order__status__in=REVENUE_STATUSES
    ).aggregate(
        total=Sum('line_total', output_field=DecimalField())
    )['total'] or Decimal('0.00')

    # All statuses are reported, zero-filled
    orders_by_status = {value: 0 for value, _label in SaleOrder.STATUS_CHOICES}
    for row in orders.values('status').annotate(count=Count('id')):
        orders_by_status[row['status']] = row['count']

    since = timezone.now() - timedelta(days=RECENT_ORDERS_DAYS)

    return {
        'total_orders': orders.count(),
        'total_products': products.count(),
        'total_users': User.objects.filter(deleted_at__isnull=True).count(),
        'total_revenue': float(total_revenue.quantize(Decimal('0.01'))),
        'pending_orders': orders.filter(status=SaleOrder.STATUS_SUBMITTED).count(),
        'low_stock_products': products.filter(
            stock_quantity__gt=0, stock_quantity__lte=LOW_STOCK_THRESHOLD
        ).count(),
        'recent_orders_count': orders.filter(created_at__gte=since).count(),
        'orders_by_status': orders_by_status,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Dashboard statistics, cached briefly"""
    cached_data, cache_key = get_cached_dashboard_stats()
    if cached_data is not None:
        logger.debug(f"Dashboard stats served from cache: {cache_key}")
        return Response(cached_data)

    stats = compute_dashboard_stats()
    cache_dashboard_stats(cache_key, stats)
    return Response(stats)
