from django.contrib import admin
from .models import Sale


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'customer_name', 'product', 'sale_type', 'quantity',
                    'final_amount', 'payment_method', 'status', 'sale_date']
    list_filter = ['status', 'sale_type', 'payment_method', 'sale_date']
    search_fields = ['invoice_number', 'customer_name', 'customer_email', 'product__name']
    list_select_related = ['product', 'customer']
    readonly_fields = ['invoice_number', 'created_at', 'updated_at']
    date_hierarchy = 'sale_date'
