"""
Test suite for the dashboard statistics endpoint
"""
from datetime import timedelta
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import SaleOrder
from backend.reports.views import compute_dashboard_stats


class DashboardStatsTests(TestCase):

    def setUp(self):
        cache.clear()
        self.salesperson = TestDataFactory.create_salesperson()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.salesperson)

    def tearDown(self):
        cache.clear()

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_empty_dashboard(self):
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 0)
        self.assertEqual(response.data['total_revenue'], 0.0)
        self.assertEqual(response.data['total_users'], 1)
        self.assertEqual(set(response.data['orders_by_status']), {
            'draft', 'submitted', 'approved', 'packing', 'packed',
            'shipped', 'delivered', 'fulfilled', 'rejected',
        })
        self.assertEqual(sum(response.data['orders_by_status'].values()), 0)

    def test_revenue_counts_approved_and_fulfilled_only(self):
        product = TestDataFactory.create_product()
        for order_status, price in [
            (SaleOrder.STATUS_APPROVED, Decimal('10.25')),
            (SaleOrder.STATUS_FULFILLED, Decimal('4.50')),
            (SaleOrder.STATUS_SUBMITTED, Decimal('99.00')),
            (SaleOrder.STATUS_DRAFT, Decimal('99.00')),
        ]:
            order = TestDataFactory.create_order(self.salesperson, status=order_status)
            TestDataFactory.create_order_item(order, product=product, quantity=2, unit_price=price)

        deleted = TestDataFactory.create_order(self.salesperson, status=SaleOrder.STATUS_APPROVED)
        TestDataFactory.create_order_item(deleted, product=product, quantity=1, unit_price=Decimal('500.00'))
        deleted.soft_delete()

        stats = compute_dashboard_stats()
        self.assertEqual(stats['total_revenue'], 29.5)
        self.assertEqual(stats['total_orders'], 4)
        self.assertEqual(stats['pending_orders'], 1)
        self.assertEqual(stats['orders_by_status']['approved'], 1)
        self.assertEqual(stats['orders_by_status']['rejected'], 0)

    def test_low_stock_and_recent_orders(self):
        TestDataFactory.create_product(stock_quantity=0)
        TestDataFactory.create_product(stock_quantity=3)
        TestDataFactory.create_product(stock_quantity=10)
        TestDataFactory.create_product(stock_quantity=11)
        TestDataFactory.create_product(stock_quantity=2).soft_delete()

        old = TestDataFactory.create_order(self.salesperson)
        SaleOrder.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=8))
        TestDataFactory.create_order(self.salesperson)

        stats = compute_dashboard_stats()
        self.assertEqual(stats['total_products'], 4)
        self.assertEqual(stats['low_stock_products'], 2)
        self.assertEqual(stats['recent_orders_count'], 1)

    def test_stats_are_cached_until_invalidated(self):
        self.client.get('/api/v1/dashboard/stats/')

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            TestDataFactory.create_order(self.salesperson)
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['total_orders'], 0)

        for callback in callbacks:
            callback()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['total_orders'], 1)

    def test_cache_hit_is_logged(self):
        self.client.get('/api/v1/dashboard/stats/')
        with self.assertLogs('backend.reports.views', level='DEBUG') as logs:
            response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('served from cache', logs.output[0])
