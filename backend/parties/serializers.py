from rest_framework import serializers

from backend.core.serializers import PageQuerySerializer, UserSummarySerializer
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    contact_person = serializers.CharField(max_length=100)
    email = serializers.EmailField()

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'contact_person', 'email', 'phone', 'shipping_address', 'billing_address',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']

    def validate_email(self, value):
        queryset = Customer.objects.alive().filter(email__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Customer with this email already exists')
        return value


class CustomerQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(required=False, allow_blank=True)
