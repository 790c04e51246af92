from django.contrib import admin
from .models import Purchase


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ['purchase_number', 'supplier', 'product', 'purchase_type', 'quantity',
                    'final_cost', 'status', 'order_date', 'received_date']
    list_filter = ['status', 'purchase_type', 'payment_method', 'order_date']
    search_fields = ['purchase_number', 'supplier__name', 'product__name']
    list_select_related = ['supplier', 'product']
    readonly_fields = ['purchase_number', 'created_at', 'updated_at']
    date_hierarchy = 'order_date'
