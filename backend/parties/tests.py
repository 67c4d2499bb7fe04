"""
Test suite for the parties module
Tests: customer access by role, ownership scoping, validation and soft delete
"""
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.models import Customer


class CustomerAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_manager()
        self.salesperson = TestDataFactory.create_salesperson()
        self.other_salesperson = TestDataFactory.create_salesperson()
        self.payload = {
            'name': 'Acme Retail',
            'contact_person': 'Robin Buyer',
            'email': 'orders@acme.test',
            'phone': '5550100',
            'shipping_address': '1 Harbour St',
        }

    def test_warehouse_denied(self):
        self.client.authenticate_user(TestDataFactory.create_warehouse_user())
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied. Only salespeople and managers can access customers.')

    def test_create_sets_creator(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.post('/api/v1/customers/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        customer = Customer.objects.get(email='orders@acme.test')
        self.assertEqual(customer.created_by, self.salesperson)
        self.assertEqual(response.data['created_by']['id'], self.salesperson.id)

    def test_create_requires_contact_and_valid_email(self):
        self.client.authenticate_user(self.salesperson)
        payload = dict(self.payload, email='not-an-email')
        payload.pop('contact_person')
        response = self.client.post('/api/v1/customers/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
        self.assertIn('contact_person', response.data)

    def test_duplicate_email_rejected(self):
        TestDataFactory.create_customer(created_by=self.other_salesperson, email='orders@acme.test')
        self.client.authenticate_user(self.salesperson)
        response = self.client.post('/api/v1/customers/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_salesperson_sees_only_own_customers(self):
        mine = TestDataFactory.create_customer(created_by=self.salesperson, name='Mine')
        theirs = TestDataFactory.create_customer(created_by=self.other_salesperson, name='Theirs')

        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/customers/')
        self.assertEqual([c['id'] for c in response.data['results']], [mine.id])
        self.assertEqual(self.client.get(f'/api/v1/customers/{theirs.id}/').status_code, status.HTTP_404_NOT_FOUND)

        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.data['count'], 2)

    def test_search_and_name_ordering(self):
        TestDataFactory.create_customer(created_by=self.salesperson, name='Zulu Stores', contact_person='Kim')
        TestDataFactory.create_customer(created_by=self.salesperson, name='Alpha Mart', contact_person='Lee')
        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/customers/')
        self.assertEqual([c['name'] for c in response.data['results']], ['Alpha Mart', 'Zulu Stores'])
        response = self.client.get('/api/v1/customers/', {'search': 'kim'})
        self.assertEqual([c['name'] for c in response.data['results']], ['Zulu Stores'])

    def test_update_email_rechecks_uniqueness(self):
        TestDataFactory.create_customer(created_by=self.salesperson, email='taken@test.com')
        customer = TestDataFactory.create_customer(created_by=self.salesperson)
        self.client.authenticate_user(self.salesperson)
        response = self.client.patch(f'/api/v1/customers/{customer.id}/', {'email': 'taken@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/customers/{customer.id}/', {'phone': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['phone'], '123')

    def test_delete_refused_while_orders_exist(self):
        customer = TestDataFactory.create_customer(created_by=self.salesperson)
        TestDataFactory.create_order(self.salesperson, customer=customer)
        self.client.authenticate_user(self.salesperson)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete customer with existing orders')

    def test_delete_is_soft(self):
        customer = TestDataFactory.create_customer(created_by=self.salesperson)
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertIsNotNone(customer.deleted_at)
        self.assertEqual(self.client.get(f'/api/v1/customers/{customer.id}/').status_code, status.HTTP_404_NOT_FOUND)
