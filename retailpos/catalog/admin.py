from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'color', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'description']
    ordering = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'supplier', 'barcode', 'sku', 'price', 'loyalty_price',
                    'stock_quantity', 'minimum_stock', 'is_active']
    list_filter = ['is_active', 'category', 'supplier']
    search_fields = ['name', 'barcode', 'sku', 'description']
    list_select_related = ['category', 'supplier']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['name']
