from django.db import models
from django.utils import timezone

from backend.core.models import User, SoftDeleteQuerySet


class Customer(models.Model):
    """Customers that sale orders are placed for"""
    name = models.CharField(max_length=200, db_index=True)
    contact_person = models.CharField(max_length=100)
    email = models.EmailField(db_index=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    shipping_address = models.CharField(max_length=500, blank=True, null=True)
    billing_address = models.CharField(max_length=500, blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='customers')
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SoftDeleteQuerySet.as_manager()

    def __str__(self):
        return self.name

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    class Meta:
        db_table = 'customers'
        ordering = ['name']
