import django_filters

from .models import SaleOrder


class SaleOrderFilter(django_filters.FilterSet):
    """Filter for the order list"""
    status = django_filters.ChoiceFilter(choices=SaleOrder.STATUS_CHOICES)
    salesperson_id = django_filters.NumberFilter(field_name='salesperson_id', lookup_expr='exact')
    customer = django_filters.CharFilter(method='filter_customer', label='Customer')
    customer_id = django_filters.NumberFilter(field_name='customer_id', lookup_expr='exact')

    class Meta:
        model = SaleOrder
        fields = ['status', 'salesperson_id', 'customer', 'customer_id']

    def filter_customer(self, queryset, name, value):
        """Customer name contains value"""
        value = value.strip() if value else ''
        if not value:
            return queryset
        return queryset.filter(customer_name__icontains=value)
