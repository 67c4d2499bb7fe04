import django_filters
from django.db.models import Q

from .models import Product, LOW_STOCK_THRESHOLD


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list using django-filter"""

    # Searches name and code
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')

    # Stock status filters
    in_stock = django_filters.BooleanFilter(method='filter_in_stock', label='In Stock')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock', label='Low Stock')

    class Meta:
        model = Product
        fields = ['search', 'category', 'in_stock', 'low_stock']

    def filter_search(self, queryset, name, value):
        search = value.strip() if value else ''
        if not search:
            return queryset
        return queryset.filter(Q(name__icontains=search) | Q(code__icontains=search))

    def filter_in_stock(self, queryset, name, value):
        """true: stock > 0, false: stock == 0"""
        if value is None:
            return queryset
        if value:
            return queryset.filter(stock_quantity__gt=0)
        return queryset.filter(stock_quantity=0)

    def filter_low_stock(self, queryset, name, value):
        """Products running low, 0 < stock <= threshold"""
        if not value:
            return queryset
        return queryset.filter(stock_quantity__gt=0, stock_quantity__lte=LOW_STOCK_THRESHOLD)
