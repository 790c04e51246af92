from django.contrib import admin
from .models import InventoryMovement, StockAlert


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ['movement_date', 'product', 'movement_type', 'quantity', 'previous_stock', 'new_stock', 'reference', 'user']
    list_filter = ['movement_type', 'reference_type', 'movement_date']
    search_fields = ['product__name', 'reference', 'reason']
    readonly_fields = ['previous_stock', 'new_stock', 'created_at', 'updated_at']
    ordering = ['-movement_date', '-id']


@admin.register(StockAlert)
class StockAlertAdmin(admin.ModelAdmin):
    list_display = ['product', 'alert_type', 'current_stock', 'threshold_stock', 'priority', 'is_resolved', 'created_at']
    list_filter = ['alert_type', 'priority', 'is_resolved']
    search_fields = ['product__name', 'notes']
    readonly_fields = ['resolved_at', 'created_at', 'updated_at']
    ordering = ['-created_at']
