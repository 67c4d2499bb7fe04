"""
Comprehensive test suite for the orders module
Tests: lifecycle table, workflow services (stock, history, atomicity), notifications and the order API
"""
from decimal import Decimal
from django.core import mail
from django.test import TestCase, SimpleTestCase
from rest_framework import status

from backend.core.exceptions import ApiError
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders import services
from backend.orders.lifecycle import (
    can_transition, validate_transition, allowed_next_statuses,
    InvalidOrderTransitionError, TERMINAL_STATES,
)
from backend.orders.models import SaleOrder, OrderItem, OrderStatusHistory

STATUSES = [value for value, _label in SaleOrder.STATUS_CHOICES]

EXPECTED_TRANSITIONS = {
    ('draft', 'submitted'),
    ('submitted', 'approved'),
    ('submitted', 'rejected'),
    ('approved', 'fulfilled'),
    ('approved', 'packing'),
    ('packing', 'packed'),
    ('packed', 'shipped'),
    ('shipped', 'delivered'),
}


class LifecycleTests(SimpleTestCase):

    def test_transition_table_is_exact(self):
        for from_status in STATUSES:
            for to_status in STATUSES:
                self.assertEqual(
                    can_transition(from_status=from_status, to_status=to_status),
                    (from_status, to_status) in EXPECTED_TRANSITIONS,
                    f'{from_status} -> {to_status}'
                )

    def test_terminal_states_have_no_successors(self):
        self.assertEqual(TERMINAL_STATES, {'rejected', 'fulfilled', 'delivered'})
        for terminal in TERMINAL_STATES:
            self.assertEqual(allowed_next_statuses(terminal), set())

    def test_validate_transition_raises_400(self):
        order = SaleOrder(status='draft', order_number='SO-TEST')
        with self.assertRaises(InvalidOrderTransitionError) as ctx:
            validate_transition(order=order, target_status='approved')
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Only submitted orders can be approved')


class SaleOrderModelTests(TestCase):

    def setUp(self):
        self.salesperson = TestDataFactory.create_salesperson()

    def test_order_number_format(self):
        order = TestDataFactory.create_order(self.salesperson)
        self.assertRegex(order.order_number, r'^SO-\d{8}-[0-9A-F]{8}$')

    def test_line_total_and_order_total(self):
        order = TestDataFactory.create_order(self.salesperson)
        TestDataFactory.create_order_item(order, quantity=3, unit_price=Decimal('2.50'))
        TestDataFactory.create_order_item(order, quantity=1, unit_price=Decimal('10.00'))
        self.assertEqual(order.items.first().line_total, Decimal('7.50'))
        self.assertEqual(order.get_total(), Decimal('17.50'))


class WorkflowServiceTests(TestCase):

    def setUp(self):
        self.salesperson = TestDataFactory.create_salesperson()
        self.manager = TestDataFactory.create_manager()
        self.warehouse = TestDataFactory.create_warehouse_user()
        self.product_a = TestDataFactory.create_product(name='Anchor', stock_quantity=10)
        self.product_b = TestDataFactory.create_product(name='Buoy', stock_quantity=5)
        self.order = TestDataFactory.create_order_with_items(
            self.salesperson, lines=[(self.product_a, 4), (self.product_b, 2)]
        )

    def _approved(self):
        services.submit_order(self.order.pk, self.salesperson)
        return services.approve_order(self.order.pk, self.manager)

    def test_submit_by_owner(self):
        order = services.submit_order(self.order.pk, self.salesperson, 'please rush')
        self.assertEqual(order.status, SaleOrder.STATUS_SUBMITTED)
        history = OrderStatusHistory.objects.get(order=order)
        self.assertEqual((history.previous_status, history.new_status), ('draft', 'submitted'))
        self.assertEqual(history.notes, 'please rush')
        self.assertEqual(history.changed_by, self.salesperson)

    def test_submit_default_history_note(self):
        services.submit_order(self.order.pk, self.salesperson)
        self.assertEqual(OrderStatusHistory.objects.get(order=self.order).notes, 'Order submitted for approval')

    def test_submit_by_other_user_forbidden(self):
        other = TestDataFactory.create_salesperson()
        with self.assertRaises(ApiError) as ctx:
            services.submit_order(self.order.pk, other)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_submit_twice_rejected(self):
        services.submit_order(self.order.pk, self.salesperson)
        with self.assertRaises(ApiError) as ctx:
            services.submit_order(self.order.pk, self.salesperson)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Only draft orders can be submitted')

    def test_submit_reports_stock_issues(self):
        self.product_b.stock_quantity = 1
        self.product_b.save()
        with self.assertRaises(ApiError) as ctx:
            services.submit_order(self.order.pk, self.salesperson)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.details, {
            'stock_issues': [{'product': 'Buoy', 'requested': 2, 'available': 1}]
        })
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, SaleOrder.STATUS_DRAFT)
        self.assertFalse(OrderStatusHistory.objects.exists())

    def test_approve_sets_manager_and_notes(self):
        services.submit_order(self.order.pk, self.salesperson)
        order = services.approve_order(self.order.pk, self.manager, 'x' * 1200)
        self.assertEqual(order.status, SaleOrder.STATUS_APPROVED)
        self.assertEqual(order.manager, self.manager)
        self.assertEqual(len(order.notes), 1000)

    def test_approve_requires_manager(self):
        services.submit_order(self.order.pk, self.salesperson)
        with self.assertRaises(ApiError) as ctx:
            services.approve_order(self.order.pk, self.warehouse)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_approve_rechecks_stock(self):
        services.submit_order(self.order.pk, self.salesperson)
        self.product_a.stock_quantity = 3
        self.product_a.save()
        with self.assertRaises(ApiError) as ctx:
            services.approve_order(self.order.pk, self.manager)
        self.assertEqual(ctx.exception.details['stock_issues'][0]['product'], 'Anchor')

    def test_reject(self):
        services.submit_order(self.order.pk, self.salesperson)
        order = services.reject_order(self.order.pk, self.manager, 'Credit hold')
        self.assertEqual(order.status, SaleOrder.STATUS_REJECTED)
        self.assertEqual(order.manager, self.manager)
        with self.assertRaises(ApiError):
            services.approve_order(self.order.pk, self.manager)

    def test_full_fulfilment_decrements_stock(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        item_b = self.order.items.get(product=self.product_b)
        order = services.fulfill_order(self.order.pk, self.warehouse, [
            {'order_item_id': item_a.id, 'fulfilled_quantity': 4},
            {'order_item_id': item_b.id, 'fulfilled_quantity': 2},
        ], 'all boxed')

        self.assertEqual(order.status, SaleOrder.STATUS_FULFILLED)
        self.assertEqual(order.warehouse, self.warehouse)
        self.product_a.refresh_from_db()
        self.product_b.refresh_from_db()
        self.assertEqual(self.product_a.stock_quantity, 6)
        self.assertEqual(self.product_b.stock_quantity, 3)
        self.assertEqual(
            set(order.items.values_list('line_status', flat=True)),
            {OrderItem.LINE_FULFILLED}
        )
        last = OrderStatusHistory.objects.filter(order=order).last()
        self.assertEqual(last.notes, 'Order fully fulfilled: all boxed')

    def test_partial_fulfilment_keeps_order_approved(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        order = services.fulfill_order(self.order.pk, self.warehouse, [
            {'order_item_id': item_a.id, 'fulfilled_quantity': 1},
        ])
        self.assertEqual(order.status, SaleOrder.STATUS_APPROVED)
        item_a.refresh_from_db()
        self.assertEqual(item_a.fulfilled_quantity, 1)
        self.assertEqual(item_a.line_status, OrderItem.LINE_PARTIALLY_FULFILLED)
        self.assertEqual(OrderStatusHistory.objects.filter(order=order).last().notes, 'Order partially fulfilled')

        # Remaining quantity is enforced on the next call
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(self.order.pk, self.warehouse, [
                {'order_item_id': item_a.id, 'fulfilled_quantity': 4},
            ])
        self.assertEqual(ctx.exception.message, 'Cannot fulfill 4 of item Anchor. Only 3 remaining.')

    def test_fulfilment_is_all_or_nothing(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(self.order.pk, self.warehouse, [
                {'order_item_id': item_a.id, 'fulfilled_quantity': 4},
                {'order_item_id': 999999, 'fulfilled_quantity': 1},
            ])
        self.assertEqual(ctx.exception.message, 'Order item 999999 not found')
        item_a.refresh_from_db()
        self.product_a.refresh_from_db()
        self.assertEqual(item_a.fulfilled_quantity, 0)
        self.assertEqual(self.product_a.stock_quantity, 10)

    def test_fulfilment_checks_current_stock(self):
        self._approved()
        self.product_b.stock_quantity = 1
        self.product_b.save()
        item_b = self.order.items.get(product=self.product_b)
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(self.order.pk, self.warehouse, [
                {'order_item_id': item_b.id, 'fulfilled_quantity': 2},
            ])
        self.assertEqual(ctx.exception.message, 'Insufficient stock for Buoy. Available: 1, Requested: 2')

    def test_repeated_item_is_checked_on_its_total(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(self.order.pk, self.warehouse, [
                {'order_item_id': item_a.id, 'fulfilled_quantity': 4},
                {'order_item_id': item_a.id, 'fulfilled_quantity': 4},
            ])
        self.assertEqual(ctx.exception.message, 'Cannot fulfill 8 of item Anchor. Only 4 remaining.')
        item_a.refresh_from_db()
        self.product_a.refresh_from_db()
        self.assertEqual(item_a.fulfilled_quantity, 0)
        self.assertEqual(self.product_a.stock_quantity, 10)

    def test_repeated_item_within_remaining_is_summed(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        services.fulfill_order(self.order.pk, self.warehouse, [
            {'order_item_id': item_a.id, 'fulfilled_quantity': 1},
            {'order_item_id': item_a.id, 'fulfilled_quantity': 2},
        ])
        item_a.refresh_from_db()
        self.product_a.refresh_from_db()
        self.assertEqual(item_a.fulfilled_quantity, 3)
        self.assertEqual(item_a.line_status, OrderItem.LINE_PARTIALLY_FULFILLED)
        self.assertEqual(self.product_a.stock_quantity, 7)

    def test_lines_sharing_a_product_are_checked_against_stock_together(self):
        shared = TestDataFactory.create_product(name='Rope', stock_quantity=5)
        order = TestDataFactory.create_order_with_items(
            self.salesperson, status=SaleOrder.STATUS_APPROVED, lines=[(shared, 3), (shared, 3)]
        )
        first, second = order.items.order_by('id')
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(order.pk, self.warehouse, [
                {'order_item_id': first.id, 'fulfilled_quantity': 3},
                {'order_item_id': second.id, 'fulfilled_quantity': 3},
            ])
        self.assertEqual(ctx.exception.message, 'Insufficient stock for Rope. Available: 5, Requested: 6')
        shared.refresh_from_db()
        self.assertEqual(shared.stock_quantity, 5)

    def test_items_of_partially_fulfilled_order_cannot_be_replaced(self):
        self._approved()
        item_a = self.order.items.get(product=self.product_a)
        services.fulfill_order(self.order.pk, self.warehouse, [
            {'order_item_id': item_a.id, 'fulfilled_quantity': 3},
        ])
        with self.assertRaises(ApiError) as ctx:
            services.update_order(self.order.pk, self.manager, {}, [
                {'product_id': self.product_a.id, 'quantity': 4, 'unit_price': Decimal('1.00')},
            ])
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Items of a partially fulfilled order cannot be replaced')
        item_a.refresh_from_db()
        self.assertEqual(item_a.fulfilled_quantity, 3)

        # Header fields can still be edited
        order = services.update_order(self.order.pk, self.manager, {'notes': 'Second truck'})
        self.assertEqual(order.notes, 'Second truck')

    def test_items_cannot_be_replaced_once_shipping_started(self):
        self._approved()
        services.start_packing(self.order.pk, self.warehouse)
        with self.assertRaises(ApiError) as ctx:
            services.update_order(self.order.pk, self.manager, {}, [
                {'product_id': self.product_a.id, 'quantity': 1, 'unit_price': Decimal('1.00')},
            ])
        self.assertEqual(ctx.exception.message, 'Items of packing orders cannot be replaced')

    def test_fulfil_requires_warehouse(self):
        self._approved()
        with self.assertRaises(ApiError) as ctx:
            services.fulfill_order(self.order.pk, self.manager, [])
        self.assertEqual(ctx.exception.status_code, 403)

    def test_shipping_track(self):
        self._approved()
        services.start_packing(self.order.pk, self.warehouse)
        services.mark_packed(self.order.pk, self.warehouse)
        services.mark_shipped(self.order.pk, self.warehouse, 'Tracking 1Z999')
        order = services.mark_delivered(self.order.pk, self.warehouse)

        self.assertEqual(order.status, SaleOrder.STATUS_DELIVERED)
        self.assertEqual(order.notes, 'Tracking 1Z999')
        self.assertEqual(order.warehouse, self.warehouse)
        self.assertEqual(
            list(OrderStatusHistory.objects.filter(order=order).values_list('new_status', flat=True)),
            ['submitted', 'approved', 'packing', 'packed', 'shipped', 'delivered']
        )

    def test_shipping_steps_cannot_be_skipped(self):
        self._approved()
        with self.assertRaises(ApiError) as ctx:
            services.mark_shipped(self.order.pk, self.warehouse)
        self.assertEqual(ctx.exception.message, 'Only packed orders can be marked as shipped')

    def test_missing_order_is_404(self):
        with self.assertRaises(ApiError) as ctx:
            services.approve_order(424242, self.manager)
        self.assertEqual(ctx.exception.status_code, 404)


class NotificationTests(TestCase):

    def setUp(self):
        self.salesperson = TestDataFactory.create_salesperson(email='seller@test.com')
        self.manager = TestDataFactory.create_manager(email='boss@test.com')
        self.order = TestDataFactory.create_order_with_items(self.salesperson)

    def test_submit_emails_managers_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            services.submit_order(self.order.pk, self.salesperson)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['boss@test.com'])
        self.assertIn(self.order.order_number, mail.outbox[0].subject)

    def test_reject_emails_salesperson_with_reason(self):
        services.submit_order(self.order.pk, self.salesperson)
        with self.captureOnCommitCallbacks(execute=True):
            services.reject_order(self.order.pk, self.manager, 'Out of territory')
        self.assertEqual(mail.outbox[-1].to, ['seller@test.com'])
        self.assertIn('Out of territory', mail.outbox[-1].body)

    def test_nothing_sent_when_transition_fails(self):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(ApiError):
                services.approve_order(self.order.pk, self.manager)
        self.assertEqual(len(mail.outbox), 0)


class OrderAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.salesperson = TestDataFactory.create_salesperson()
        self.other_salesperson = TestDataFactory.create_salesperson()
        self.manager = TestDataFactory.create_manager()
        self.warehouse = TestDataFactory.create_warehouse_user()
        self.product = TestDataFactory.create_product(name='Crate', stock_quantity=20)

    def _payload(self, **overrides):
        payload = {
            'customer_name': 'Harbour Foods',
            'contact_person': 'Ari Buyer',
            'email': 'ari@harbour.test',
            'delivery_date': '2026-11-01',
            'items': [{'product_id': self.product.id, 'quantity': 3, 'unit_price': '12.50'}],
        }
        payload.update(overrides)
        return payload

    def test_create_draft_order(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.post('/api/v1/orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['salesperson']['id'], self.salesperson.id)
        self.assertEqual(response.data['total'], '37.50')
        item = response.data['items'][0]
        self.assertEqual(item['line_total'], '37.50')
        self.assertTrue(item['is_in_stock'])
        self.assertEqual(item['line_status'], 'pending')
        self.assertTrue(AuditLog.objects.filter(model_name='SaleOrder', action='create').exists())

    def test_create_marks_out_of_stock_lines(self):
        self.client.authenticate_user(self.salesperson)
        payload = self._payload(items=[{'product_id': self.product.id, 'quantity': 50, 'unit_price': '1.00'}])
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['items'][0]['is_in_stock'])

    def test_create_validation(self):
        self.client.authenticate_user(self.salesperson)
        cases = [
            ('items', self._payload(items=[])),
            ('items', self._payload(items=[{'product_id': self.product.id, 'quantity': 0, 'unit_price': '1'}])),
            ('items', self._payload(items=[{'product_id': self.product.id, 'quantity': 1, 'unit_price': '-1'}])),
            ('notes', self._payload(notes='n' * 1001)),
            ('email', self._payload(email='nope')),
        ]
        for field, payload in cases:
            response = self.client.post('/api/v1/orders/', payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, field)
            self.assertIn(field, response.data)

    def test_create_unknown_product(self):
        self.client.authenticate_user(self.salesperson)
        payload = self._payload(items=[{'product_id': 987654, 'quantity': 1, 'unit_price': '1.00'}])
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Product 987654 not found')
        self.assertFalse(SaleOrder.objects.exists())

    def test_create_with_other_salespersons_customer_rejected(self):
        customer = TestDataFactory.create_customer(created_by=self.other_salesperson)
        self.client.authenticate_user(self.salesperson)
        response = self.client.post('/api/v1/orders/', self._payload(customer_id=customer.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_id', response.data)

    def test_warehouse_cannot_create(self):
        self.client.authenticate_user(self.warehouse)
        response = self.client.post('/api/v1/orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_visibility_by_role(self):
        own = TestDataFactory.create_order(self.salesperson)
        TestDataFactory.create_order(self.other_salesperson)
        approved = TestDataFactory.create_order(self.other_salesperson, status=SaleOrder.STATUS_APPROVED)

        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual([o['id'] for o in response.data['results']], [own.id])

        self.client.authenticate_user(self.warehouse)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual([o['id'] for o in response.data['results']], [approved.id])

        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.data['count'], 3)

    def test_list_filters(self):
        TestDataFactory.create_order(self.salesperson, customer_name='Harbour Foods')
        target = TestDataFactory.create_order(self.other_salesperson, customer_name='Mill Bakery')
        self.client.authenticate_user(self.manager)

        response = self.client.get('/api/v1/orders/', {'customer': 'bakery'})
        self.assertEqual([o['id'] for o in response.data['results']], [target.id])
        response = self.client.get('/api/v1/orders/', {'salesperson_id': self.other_salesperson.id})
        self.assertEqual([o['id'] for o in response.data['results']], [target.id])
        response = self.client.get('/api/v1/orders/', {'status': 'submitted'})
        self.assertEqual(response.data['count'], 0)
        response = self.client.get('/api/v1/orders/', {'status': 'bogus'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_salesperson_filter_is_manager_only(self):
        self.client.authenticate_user(self.salesperson)
        response = self.client.get('/api/v1/orders/', {'salesperson_id': self.other_salesperson.id})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_access(self):
        order = TestDataFactory.create_order(self.other_salesperson)
        self.client.authenticate_user(self.salesperson)
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied')

        self.client.authenticate_user(self.warehouse)
        self.assertEqual(self.client.get(f'/api/v1/orders/{order.id}/').status_code, status.HTTP_403_FORBIDDEN)

        order.soft_delete()
        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Order not found')

    def test_salesperson_updates_own_draft_and_replaces_items(self):
        order = TestDataFactory.create_order_with_items(self.salesperson)
        other_product = TestDataFactory.create_product(name='Pallet')
        self.client.authenticate_user(self.salesperson)
        response = self.client.patch(f'/api/v1/orders/{order.id}/', {
            'notes': 'Leave at dock',
            'items': [{'product_id': other_product.id, 'quantity': 1, 'unit_price': '5.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Leave at dock')
        self.assertEqual([i['product']['name'] for i in response.data['items']], ['Pallet'])

    def test_update_rules(self):
        submitted = TestDataFactory.create_order(self.salesperson, status=SaleOrder.STATUS_SUBMITTED)
        fulfilled = TestDataFactory.create_order(self.salesperson, status=SaleOrder.STATUS_FULFILLED)
        foreign = TestDataFactory.create_order(self.other_salesperson)

        self.client.authenticate_user(self.salesperson)
        response = self.client.patch(f'/api/v1/orders/{submitted.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only draft orders can be updated')
        response = self.client.patch(f'/api/v1/orders/{foreign.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        self.assertEqual(
            self.client.patch(f'/api/v1/orders/{submitted.id}/', {'notes': 'x'}, format='json').status_code,
            status.HTTP_200_OK
        )
        response = self.client.patch(f'/api/v1/orders/{fulfilled.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.data['error'], 'Fulfilled orders cannot be updated')

        self.client.authenticate_user(self.warehouse)
        response = self.client.patch(f'/api/v1/orders/{submitted.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_rules(self):
        draft = TestDataFactory.create_order(self.salesperson)
        submitted = TestDataFactory.create_order(self.salesperson, status=SaleOrder.STATUS_SUBMITTED)

        self.client.authenticate_user(self.salesperson)
        response = self.client.delete(f'/api/v1/orders/{submitted.id}/')
        self.assertEqual(response.data['error'], 'Only draft orders can be deleted')
        response = self.client.delete(f'/api/v1/orders/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        draft.refresh_from_db()
        self.assertIsNotNone(draft.deleted_at)

    def test_full_workflow_over_http(self):
        self.client.authenticate_user(self.salesperson)
        order_id = self.client.post('/api/v1/orders/', self._payload(), format='json').data['id']
        response = self.client.post(f'/api/v1/orders/{order_id}/submit/', {'notes': 'Rush'}, format='json')
        self.assertEqual(response.data['status'], 'submitted')

        # Salespeople cannot approve
        response = self.client.post(f'/api/v1/orders/{order_id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        response = self.client.post(f'/api/v1/orders/{order_id}/approve/', {'notes': 'OK'}, format='json')
        self.assertEqual(response.data['status'], 'approved')
        self.assertEqual(response.data['manager']['id'], self.manager.id)

        self.client.authenticate_user(self.warehouse)
        item_id = response.data['items'][0]['id']
        response = self.client.post(f'/api/v1/orders/{order_id}/fulfill/', {
            'items': [{'order_item_id': item_id, 'fulfilled_quantity': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'fulfilled')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 17)

        response = self.client.get(f'/api/v1/orders/{order_id}/history/')
        self.assertEqual(
            [(h['previous_status'], h['new_status']) for h in response.data],
            [('draft', 'submitted'), ('submitted', 'approved'), ('approved', 'fulfilled')]
        )
        self.assertEqual(
            set(AuditLog.objects.filter(model_name='SaleOrder').values_list('action', flat=True)),
            {'create', 'order_submit', 'order_approve', 'order_fulfill'}
        )

    def test_shipping_endpoints(self):
        order = TestDataFactory.create_order_with_items(self.salesperson, status=SaleOrder.STATUS_APPROVED)
        self.client.authenticate_user(self.warehouse)
        for path, expected in [
            ('start-packing', 'packing'),
            ('mark-packed', 'packed'),
            ('mark-shipped', 'shipped'),
            ('mark-delivered', 'delivered'),
        ]:
            response = self.client.post(f'/api/v1/orders/{order.id}/{path}/', {}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK, path)
            self.assertEqual(response.data['status'], expected)

        response = self.client.post(f'/api/v1/orders/{order.id}/mark-delivered/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_workflow_notes_length_validated(self):
        order = TestDataFactory.create_order_with_items(self.salesperson)
        self.client.authenticate_user(self.salesperson)
        response = self.client.post(f'/api/v1/orders/{order.id}/submit/', {'notes': 'n' * 1001}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('notes', response.data)

    def test_fulfill_rejects_negative_quantity(self):
        order = TestDataFactory.create_order_with_items(self.salesperson, status=SaleOrder.STATUS_APPROVED)
        self.client.authenticate_user(self.warehouse)
        response = self.client.post(f'/api/v1/orders/{order.id}/fulfill/', {
            'items': [{'order_item_id': order.items.first().id, 'fulfilled_quantity': -1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
