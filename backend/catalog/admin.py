from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'category', 'wholesale_price', 'retail_price', 'tax_rate', 'stock_quantity', 'deleted_at', 'created_at']
    list_filter = ['category', 'created_at']
    search_fields = ['code', 'name', 'category']
    ordering = ['name']
