from django.contrib import admin
from .models import SaleOrder, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product', 'quantity', 'unit_price', 'line_total', 'fulfilled_quantity', 'line_status']
    readonly_fields = ['line_total']


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    fields = ['previous_status', 'new_status', 'changed_by', 'notes', 'created_at']
    readonly_fields = fields
    can_delete = False


@admin.register(SaleOrder)
class SaleOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'status', 'salesperson', 'manager', 'get_total', 'deleted_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['order_number', 'customer_name', 'contact_person', 'email']
    ordering = ['-created_at']
    inlines = [OrderItemInline, OrderStatusHistoryInline]
    readonly_fields = ['order_number', 'created_at', 'updated_at']

    def get_total(self, obj):
        return f"{obj.get_total():.2f}"
    get_total.short_description = 'Total'
