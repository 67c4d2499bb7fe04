from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid

from backend.catalog.models import Product
from backend.core.models import User, SoftDeleteQuerySet
from backend.parties.models import Customer


class SaleOrder(models.Model):
    """Sale order placed by a salesperson for a customer"""
    STATUS_DRAFT = 'draft'
    STATUS_SUBMITTED = 'submitted'
    STATUS_APPROVED = 'approved'
    STATUS_PACKING = 'packing'
    STATUS_PACKED = 'packed'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_FULFILLED = 'fulfilled'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SUBMITTED, 'Submitted'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_PACKING, 'Packing'),
        (STATUS_PACKED, 'Packed'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_FULFILLED, 'Fulfilled'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    order_number = models.CharField(max_length=50, unique=True, blank=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=100)
    email = models.EmailField()
    shipping_address = models.CharField(max_length=500, blank=True, null=True)
    delivery_date = models.DateField(null=True, blank=True)
    notes = models.CharField(max_length=1000, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    salesperson = models.ForeignKey(User, on_delete=models.PROTECT, related_name='sales_orders')
    manager = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='managed_orders')
    warehouse = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='warehouse_orders')
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.order_number or f"Order-{self.id}"

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self.generate_order_number()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_order_number():
        """SO-YYYYMMDD-XXXXXXXX, retried until unused"""
        date_part = timezone.now().strftime('%Y%m%d')
        order_number = f"SO-{date_part}-{uuid.uuid4().hex[:8].upper()}"
        while SaleOrder.objects.filter(order_number=order_number).exists():
            order_number = f"SO-{date_part}-{uuid.uuid4().hex[:8].upper()}"
        return order_number

    def get_total(self):
        """Sum of line totals"""
        return sum((item.line_total for item in self.items.all()), Decimal('0.00'))

    def is_fully_fulfilled(self):
        return all(item.fulfilled_quantity >= item.quantity for item in self.items.all())

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    class Meta:
        db_table = 'sale_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_order_status_created'),
            models.Index(fields=['salesperson', 'status'], name='idx_order_salesperson_status'),
        ]


class OrderItem(models.Model):
    """Sale order line items"""
    LINE_PENDING = 'pending'
    LINE_PARTIALLY_FULFILLED = 'partially_fulfilled'
    LINE_FULFILLED = 'fulfilled'

    LINE_STATUS_CHOICES = [
        (LINE_PENDING, 'Pending'),
        (LINE_PARTIALLY_FULFILLED, 'Partially Fulfilled'),
        (LINE_FULFILLED, 'Fulfilled'),
    ]

    order = models.ForeignKey(SaleOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    is_in_stock = models.BooleanField(default=True)
    fulfilled_quantity = models.PositiveIntegerField(default=0)
    line_status = models.CharField(max_length=30, choices=LINE_STATUS_CHOICES, default=LINE_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.order} - {self.product} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.line_total = self.get_line_total()
        super().save(*args, **kwargs)

    def get_line_total(self):
        """Calculate line total"""
        return Decimal(self.quantity) * Decimal(self.unit_price)

    @property
    def remaining_quantity(self):
        return self.quantity - self.fulfilled_quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['order', 'product'], name='idx_orderitem_order_product'),
        ]


class OrderStatusHistory(models.Model):
    """Status transitions of a sale order"""
    order = models.ForeignKey(SaleOrder, on_delete=models.CASCADE, related_name='status_history')
    previous_status = models.CharField(max_length=20, choices=SaleOrder.STATUS_CHOICES, blank=True, null=True)
    new_status = models.CharField(max_length=20, choices=SaleOrder.STATUS_CHOICES)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='order_status_changes')
    notes = models.CharField(max_length=1000, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.order}: {self.previous_status} -> {self.new_status}"

    class Meta:
        db_table = 'order_status_history'
        ordering = ['created_at', 'id']
        verbose_name_plural = 'order status history'
