"""
Test suite for the core module
Tests: RBAC policy, error handling, role headers, authentication, users and audit logs
"""
from io import StringIO
from types import SimpleNamespace

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from rest_framework.exceptions import NotFound

from backend.core.exceptions import ApiError, api_exception_handler
from backend.core.models import User, AuditLog
from backend.core.rbac import (
    can_access_order, can_edit_order, require_role,
    SALESPERSON, MANAGER, WAREHOUSE,
)
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log

ALL_STATUSES = ['draft', 'submitted', 'approved', 'packing', 'packed', 'shipped', 'delivered', 'fulfilled', 'rejected']


def make_order(salesperson_id, order_status):
    return SimpleNamespace(salesperson_id=salesperson_id, status=order_status)


class CanAccessOrderTests(SimpleTestCase):
    """Visibility of an order per role"""

    def test_salesperson_sees_only_own_orders(self):
        for order_status in ALL_STATUSES:
            self.assertTrue(can_access_order(SALESPERSON, 7, make_order(7, order_status)))
            self.assertFalse(can_access_order(SALESPERSON, 7, make_order(8, order_status)))

    def test_salesperson_id_compared_as_string(self):
        self.assertTrue(can_access_order(SALESPERSON, '7', make_order(7, 'draft')))

    def test_manager_sees_everything(self):
        for order_status in ALL_STATUSES:
            self.assertTrue(can_access_order(MANAGER, 1, make_order(99, order_status)))

    def test_warehouse_sees_orders_from_approval_onward(self):
        visible = {'approved', 'packing', 'packed', 'shipped', 'delivered', 'fulfilled'}
        for order_status in ALL_STATUSES:
            self.assertEqual(
                can_access_order(WAREHOUSE, 1, make_order(99, order_status)),
                order_status in visible,
                order_status
            )

    def test_unknown_role_denied(self):
        self.assertFalse(can_access_order('auditor', 1, make_order(1, 'approved')))
        self.assertFalse(can_access_order(None, 1, make_order(1, 'approved')))


class CanEditOrderTests(SimpleTestCase):
    """Mutability of an order per role and status"""

    def test_salesperson_edits_own_drafts_only(self):
        for order_status in ALL_STATUSES:
            self.assertEqual(can_edit_order(SALESPERSON, 3, make_order(3, order_status)), order_status == 'draft')
        self.assertFalse(can_edit_order(SALESPERSON, 3, make_order(4, 'draft')))

    def test_manager_edits_submitted_only(self):
        for order_status in ALL_STATUSES:
            self.assertEqual(can_edit_order(MANAGER, 1, make_order(3, order_status)), order_status == 'submitted')

    def test_warehouse_edits_shipping_track(self):
        editable = {'approved', 'packing', 'packed', 'shipped'}
        for order_status in ALL_STATUSES:
            self.assertEqual(
                can_edit_order(WAREHOUSE, 1, make_order(3, order_status)),
                order_status in editable,
                order_status
            )

    def test_unknown_role_denied(self):
        self.assertFalse(can_edit_order('guest', 3, make_order(3, 'draft')))


class RequireRoleTests(SimpleTestCase):

    def test_allowed_role_passes(self):
        user = SimpleNamespace(is_authenticated=True, role=MANAGER)
        require_role(user, [MANAGER])

    def test_disallowed_role_raises_403(self):
        user = SimpleNamespace(is_authenticated=True, role=SALESPERSON)
        with self.assertRaises(ApiError) as ctx:
            require_role(user, [MANAGER, WAREHOUSE])
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.message, 'Access denied. Required roles: manager, warehouse')

    def test_anonymous_user_raises_403(self):
        user = SimpleNamespace(is_authenticated=False)
        with self.assertRaises(ApiError):
            require_role(user, [MANAGER])


class ExceptionHandlerTests(SimpleTestCase):

    def test_api_error_rendered_with_details(self):
        response = api_exception_handler(ApiError(400, 'Bad thing', {'field': 'x'}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {'error': 'Bad thing', 'details': {'field': 'x'}})

    def test_drf_exception_rendered_as_error(self):
        response = api_exception_handler(NotFound('Nope'), {})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'error': 'Nope'})

    def test_unhandled_exception_becomes_500(self):
        with self.assertLogs('backend.core.exceptions', level='ERROR'):
            response = api_exception_handler(RuntimeError('boom'), {'view': None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'error': 'Internal server error'})


class RoleHeaderMiddlewareTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_manager()

    def test_bearer_request_gets_role_headers(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-User-Role'], 'manager')
        self.assertEqual(response['X-User-Id'], str(self.manager.pk))

    def test_session_request_gets_role_headers(self):
        self.client.force_login(self.manager)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['X-User-Role'], 'manager')

    def test_created_response_gets_role_headers(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/products/', {
            'code': 'HDR-1', 'name': 'Header Crate', 'wholesale_price': '1.00',
            'retail_price': '2.00', 'tax_rate': '0.10', 'stock_quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response['X-User-Role'], 'manager')
        self.assertEqual(response['X-User-Id'], str(self.manager.pk))

    def test_anonymous_request_has_no_role_headers(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.has_header('X-User-Role'))

    def test_invalid_token_is_logged_and_rejected(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        with self.assertLogs('backend.core.middleware', level='WARNING'):
            response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)


class AuthTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_salesperson(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newseller',
            'email': 'newseller@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'role': 'manager',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'salesperson')
        self.assertEqual(response.data['user']['name'], 'newseller')
        self.assertIn('access', response.data)
        self.assertEqual(User.objects.get(username='newseller').role, User.ROLE_SALESPERSON)

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'mismatch',
            'email': 'mismatch@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Other-Passw0rd!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(username='taken', email='taken@test.com')
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'another',
            'email': 'TAKEN@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_login_returns_tokens_and_user(self):
        TestDataFactory.create_manager(username='boss', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'boss', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'manager')

    def test_login_rejects_deleted_user(self):
        user = TestDataFactory.create_user(username='gone', password='testpass123')
        user.soft_delete()
        response = self.client.post('/api/v1/auth/login/', {'username': 'gone', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_of_deleted_user_no_longer_works(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        user.soft_delete()
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_capabilities(self):
        warehouse = TestDataFactory.create_warehouse_user()
        self.client.authenticate_user(warehouse)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['can_fulfill_orders'])
        self.assertFalse(response.data['can_create_orders'])
        self.assertFalse(response.data['can_access_customers'])
        self.assertFalse(response.data['is_manager'])

    def test_signout_ends_session(self):
        user = TestDataFactory.create_user()
        self.client.force_login(user)
        response = self.client.post('/api/v1/auth/signout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/auth/me/').status_code, status.HTTP_401_UNAUTHORIZED)


class UserAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_manager()
        self.salesperson = TestDataFactory.create_salesperson()

    def test_list_requires_manager(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied. Required roles: manager')

    def test_list_filters_by_role_and_hides_deleted(self):
        TestDataFactory.create_warehouse_user().soft_delete()
        warehouse = TestDataFactory.create_warehouse_user()
        self.client.authenticate_user(self.manager)

        response = self.client.get('/api/v1/users/', {'role': 'warehouse'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['id'] for u in response.data['results']], [warehouse.id])

        response = self.client.get('/api/v1/users/', {'role': 'warehouse', 'include_deleted': 'true'})
        self.assertEqual(response.data['count'], 2)

    def test_list_rejects_limit_over_100(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/users/', {'limit': 101})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manager_creates_user(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/users/', {
            'email': 'packer@test.com', 'name': 'Pat Packer', 'role': 'warehouse'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='packer@test.com')
        self.assertEqual(user.role, User.ROLE_WAREHOUSE)
        self.assertFalse(user.has_usable_password())
        self.assertTrue(AuditLog.objects.filter(model_name='User', object_id=str(user.id), action='create').exists())

    def test_create_duplicate_email_rejected(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/users/', {
            'email': self.salesperson.email, 'name': 'Dup', 'role': 'salesperson'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_user_can_view_self_but_not_others(self):
        self.client.authenticate_user(self.salesperson)
        self.assertEqual(self.client.get(f'/api/v1/users/{self.salesperson.id}/').status_code, status.HTTP_200_OK)
        response = self.client.get(f'/api/v1/users/{self.manager.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_only_manager_changes_role(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.patch(f'/api/v1/users/{self.salesperson.id}/', {'role': 'manager'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Only managers can change user roles')

        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/users/{self.salesperson.id}/', {'role': 'warehouse'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.salesperson.refresh_from_db()
        self.assertEqual(self.salesperson.role, User.ROLE_WAREHOUSE)

    def test_self_update_name(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.patch(f'/api/v1/users/{self.salesperson.id}/', {'name': 'Sam Seller'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Sam Seller')

    def test_manager_soft_deletes_user(self):
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/users/{self.salesperson.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.salesperson.refresh_from_db()
        self.assertIsNotNone(self.salesperson.deleted_at)
        self.assertFalse(self.salesperson.is_active)
        self.assertEqual(self.client.get(f'/api/v1/users/{self.salesperson.id}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_manager_cannot_delete_self(self):
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/users/{self.manager.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_salesperson_cannot_delete(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.delete(f'/api/v1/users/{self.manager.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_manager()

    def test_missing_fields_skips_entry(self):
        with self.assertLogs('backend.core.utils', level='WARNING'):
            self.assertIsNone(create_audit_log(action='create', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_list_filters_by_reference(self):
        create_audit_log(user=self.manager, action='create', model_name='Product', object_id=1, object_reference='P-1')
        create_audit_log(user=self.manager, action='update', model_name='Product', object_id=2, object_reference='P-2')
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/audit-logs/', {'reference': 'P-2'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'update')

    def test_list_requires_manager(self):
        self.client.authenticate_user(TestDataFactory.create_warehouse_user())
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CreateUserGroupsCommandTests(TestCase):

    def test_groups_created_and_users_synced(self):
        salesperson = TestDataFactory.create_salesperson()
        warehouse = TestDataFactory.create_warehouse_user()

        call_command('create_user_groups', stdout=StringIO())

        self.assertEqual(
            set(Group.objects.values_list('name', flat=True)),
            {'Salesperson', 'Manager', 'Warehouse'}
        )
        self.assertEqual(list(salesperson.groups.values_list('name', flat=True)), ['Salesperson'])
        self.assertEqual(list(warehouse.groups.values_list('name', flat=True)), ['Warehouse'])

    def test_role_change_moves_user_between_groups(self):
        user = TestDataFactory.create_salesperson()
        call_command('create_user_groups', stdout=StringIO())
        user.role = User.ROLE_MANAGER
        user.save()
        call_command('create_user_groups', stdout=StringIO())
        self.assertEqual(list(user.groups.values_list('name', flat=True)), ['Manager'])
