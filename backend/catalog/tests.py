"""
Test suite for the catalog module
Tests: product validation, filtering, manager-only writes and soft delete
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductModelTests(TestCase):

    def test_low_stock_boundaries(self):
        self.assertFalse(TestDataFactory.create_product(stock_quantity=0).is_low_stock)
        self.assertTrue(TestDataFactory.create_product(stock_quantity=1).is_low_stock)
        self.assertTrue(TestDataFactory.create_product(stock_quantity=10).is_low_stock)
        self.assertFalse(TestDataFactory.create_product(stock_quantity=11).is_low_stock)

    def test_soft_delete_hides_from_alive(self):
        product = TestDataFactory.create_product()
        product.soft_delete()
        self.assertFalse(Product.objects.alive().filter(pk=product.pk).exists())
        self.assertTrue(Product.objects.deleted().filter(pk=product.pk).exists())


class ProductAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_manager()
        self.salesperson = TestDataFactory.create_salesperson()
        self.payload = {
            'code': 'WID-001',
            'name': 'Widget',
            'category': 'Hardware',
            'wholesale_price': '8.50',
            'retail_price': '12.00',
            'tax_rate': '0.18',
            'stock_quantity': 40,
        }

    def test_manager_creates_product(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(code='WID-001')
        self.assertEqual(product.tax_rate, Decimal('0.1800'))
        self.assertTrue(AuditLog.objects.filter(model_name='Product', object_reference='WID-001').exists())

    def test_salesperson_cannot_create(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.post('/api/v1/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied. Required roles: manager')

    def test_validation_rejects_out_of_range_values(self):
        self.client.authenticate_user(self.manager)
        for field, value in [('tax_rate', '1.5'), ('stock_quantity', -1), ('retail_price', '-1.00')]:
            payload = dict(self.payload, **{field: value})
            response = self.client.post('/api/v1/products/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field)
            self.assertIn(field, response.data)

    def test_duplicate_code_rejected(self):
        TestDataFactory.create_product(code='WID-001')
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data)

    def test_code_of_deleted_product_can_be_reused(self):
        TestDataFactory.create_product(code='WID-001').soft_delete()
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/products/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_update_code_rechecks_uniqueness(self):
        TestDataFactory.create_product(code='TAKEN')
        product = TestDataFactory.create_product(code='MINE')
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'code': 'TAKEN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'code': 'MINE', 'stock_quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_low_stock'])

    def test_list_filters(self):
        TestDataFactory.create_product(name='Alpha bolt', code='A-1', category='Bolts', stock_quantity=0)
        TestDataFactory.create_product(name='Beta bolt', code='B-1', category='Bolts', stock_quantity=5)
        TestDataFactory.create_product(name='Gamma nut', code='G-1', category='Nuts', stock_quantity=50)
        self.client.authenticate_user(self.salesperson)

        def names(params):
            response = self.client.get('/api/v1/products/', params)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            return [p['name'] for p in response.data['results']]

        self.assertEqual(names({}), ['Alpha bolt', 'Beta bolt', 'Gamma nut'])
        self.assertEqual(names({'search': 'bolt'}), ['Alpha bolt', 'Beta bolt'])
        self.assertEqual(names({'search': 'g-1'}), ['Gamma nut'])
        self.assertEqual(names({'category': 'Nuts'}), ['Gamma nut'])
        self.assertEqual(names({'in_stock': 'true'}), ['Beta bolt', 'Gamma nut'])
        self.assertEqual(names({'in_stock': 'false'}), ['Alpha bolt'])
        self.assertEqual(names({'low_stock': 'true'}), ['Beta bolt'])

    def test_list_pagination_envelope(self):
        for i in range(3):
            TestDataFactory.create_product(name=f'Item {i}')
        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/products/', {'page': 2, 'limit': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['previous'], 1)
        self.assertIsNone(response.data['next'])
        self.assertEqual(len(response.data['results']), 1)

    def test_delete_is_soft_and_manager_only(self):
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.salesperson)
        self.assertEqual(self.client.delete(f'/api/v1/products/{product.id}/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertIsNotNone(product.deleted_at)
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Product not found')
