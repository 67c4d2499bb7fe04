"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import Product
from backend.parties.models import Customer
from backend.orders.models import SaleOrder, OrderItem
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_SALESPERSON,
                    name=None, is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            name=name or username,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        return user

    @staticmethod
    def create_salesperson(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_SALESPERSON, **kwargs)

    @staticmethod
    def create_manager(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_MANAGER, **kwargs)

    @staticmethod
    def create_warehouse_user(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_WAREHOUSE, **kwargs)

    @staticmethod
    def create_product(name=None, code=None, category='General', stock_quantity=100,
                       wholesale_price=None, retail_price=None, tax_rate=None):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'P-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            name=name,
            code=code,
            category=category,
            wholesale_price=wholesale_price if wholesale_price is not None else Decimal('80.00'),
            retail_price=retail_price if retail_price is not None else Decimal('100.00'),
            tax_rate=tax_rate if tax_rate is not None else Decimal('0.1800'),
            stock_quantity=stock_quantity
        )

    @staticmethod
    def create_customer(created_by=None, name=None, email=None, contact_person=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Customer.objects.create(
            name=name,
            contact_person=contact_person or 'Jordan Buyer',
            email=email,
            phone=f'9{random.randint(100000000, 999999999)}',
            shipping_address='1 Dock Road',
            created_by=created_by
        )

    @staticmethod
    def create_order(salesperson, status=SaleOrder.STATUS_DRAFT, customer=None, customer_name=None):
        """Create a test sale order (without items)"""
        return SaleOrder.objects.create(
            salesperson=salesperson,
            customer=customer,
            customer_name=customer_name or (customer.name if customer else f'Customer_{TestDataFactory.random_string(6)}'),
            contact_person=customer.contact_person if customer else 'Jordan Buyer',
            email=customer.email if customer else 'buyer@test.com',
            status=status
        )

    @staticmethod
    def create_order_item(order, product=None, quantity=2, unit_price=None):
        """Create a test order line"""
        if product is None:
            product = TestDataFactory.create_product()
        return OrderItem.objects.create(
            order=order,
            product=product,
            quantity=quantity,
            unit_price=unit_price if unit_price is not None else product.retail_price,
            is_in_stock=product.stock_quantity >= quantity
        )

    @staticmethod
    def create_order_with_items(salesperson, status=SaleOrder.STATUS_DRAFT, lines=None):
        """Create an order with one line per (product, quantity) pair in lines"""
        order = TestDataFactory.create_order(salesperson, status=status)
        if lines is None:
            lines = [(TestDataFactory.create_product(), 2)]
        for product, quantity in lines:
            TestDataFactory.create_order_item(order, product=product, quantity=quantity)
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
        super().logout()
