from django.contrib import admin
from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_person', 'phone', 'email', 'created_by', 'deleted_at', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'contact_person', 'phone', 'email']
    ordering = ['name']
