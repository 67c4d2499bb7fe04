from rest_framework import serializers

from backend.catalog.models import Product
from backend.core.rbac import SALESPERSON
from backend.core.serializers import UserSummarySerializer, PageQuerySerializer
from backend.parties.models import Customer
from .models import SaleOrder, OrderItem, OrderStatusHistory


class OrderProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'code', 'name', 'stock_quantity']


class OrderItemSerializer(serializers.ModelSerializer):
    product = OrderProductSerializer(read_only=True)
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'product', 'quantity', 'unit_price', 'line_total',
                  'is_in_stock', 'fulfilled_quantity', 'line_status']
        read_only_fields = fields


class SaleOrderSerializer(serializers.ModelSerializer):
    salesperson = UserSummarySerializer(read_only=True)
    manager = UserSummarySerializer(read_only=True)
    warehouse = UserSummarySerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    customer_id = serializers.IntegerField(read_only=True)
    total = serializers.SerializerMethodField()

    class Meta:
        model = SaleOrder
        fields = ['id', 'order_number', 'customer_id', 'customer_name', 'contact_person', 'email',
                  'shipping_address', 'delivery_date', 'notes', 'status', 'salesperson', 'manager',
                  'warehouse', 'items', 'total', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_total(self, obj):
        return str(obj.get_total())


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, error_messages={'min_value': 'Quantity must be at least 1'})
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0,
        error_messages={'min_value': 'Unit price must be positive'}
    )


class SaleOrderCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=200)
    contact_person = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    shipping_address = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    items = OrderItemInputSerializer(many=True, allow_empty=False)

    def validate_customer_id(self, value):
        """Resolve to a live customer the caller may use"""
        if value is None:
            return None
        request = self.context.get('request')
        queryset = Customer.objects.alive()
        if request is not None and request.user.role == SALESPERSON:
            queryset = queryset.filter(created_by=request.user)
        if not queryset.filter(pk=value).exists():
            raise serializers.ValidationError('Customer not found')
        return value

    def to_order_data(self):
        """Split validated data into (order fields, item dicts)"""
        data = dict(self.validated_data)
        items = [dict(item) for item in data.pop('items')] if 'items' in data else None
        return data, items


class SaleOrderUpdateSerializer(SaleOrderCreateSerializer):
    customer_name = serializers.CharField(max_length=200, required=False)
    contact_person = serializers.CharField(max_length=100, required=False)
    email = serializers.EmailField(required=False)
    items = OrderItemInputSerializer(many=True, allow_empty=False, required=False)


class OrderQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=SaleOrder.STATUS_CHOICES, required=False)
    salesperson_id = serializers.IntegerField(required=False)
    customer = serializers.CharField(required=False, allow_blank=True)
    customer_id = serializers.IntegerField(required=False)


class WorkflowActionSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)


class FulfillItemSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField()
    fulfilled_quantity = serializers.IntegerField(
        min_value=0, error_messages={'min_value': 'Fulfilled quantity must be non-negative'}
    )


class FulfillOrderSerializer(WorkflowActionSerializer):
    items = FulfillItemSerializer(many=True, allow_empty=False)


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = OrderStatusHistory
        fields = ['id', 'previous_status', 'new_status', 'changed_by', 'notes', 'created_at']
