from decimal import Decimal
from rest_framework import serializers

from backend.core.serializers import PageQuerySerializer
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    wholesale_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'),
        error_messages={'min_value': 'Wholesale price must be positive'}
    )
    retail_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'),
        error_messages={'min_value': 'Retail price must be positive'}
    )
    tax_rate = serializers.DecimalField(
        max_digits=5, decimal_places=4, min_value=Decimal('0'), max_value=Decimal('1'),
        required=False, default=Decimal('0'),
        error_messages={'min_value': 'Tax rate must be positive', 'max_value': 'Tax rate cannot exceed 100%'}
    )
    stock_quantity = serializers.IntegerField(
        min_value=0, error_messages={'min_value': 'Stock quantity must be non-negative'}
    )
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'code', 'name', 'category', 'wholesale_price', 'retail_price', 'tax_rate',
            'stock_quantity', 'is_low_stock', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'is_low_stock', 'created_at', 'updated_at']
        extra_kwargs = {
            'category': {'required': False, 'allow_null': True, 'allow_blank': True},
        }

    def validate_code(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Product code is required')
        queryset = Product.objects.alive().filter(code__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Product with this code already exists')
        return value


class ProductQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True)
    in_stock = serializers.BooleanField(required=False, allow_null=True, default=None)
    low_stock = serializers.BooleanField(required=False, allow_null=True, default=None)

