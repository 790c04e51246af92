from django.contrib import admin
from .models import CashTransaction


@admin.register(CashTransaction)
class CashTransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_date', 'type', 'amount', 'description', 'payment_method', 'user']
    list_filter = ['type', 'payment_method', 'transaction_date']
    search_fields = ['description', 'reference', 'notes']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-transaction_date', '-id']
    date_hierarchy = 'transaction_date'
