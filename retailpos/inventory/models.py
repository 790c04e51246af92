from django.conf import settings
from django.db import models
from django.utils import timezone

from retailpos.catalog.models import Product


class InventoryMovement(models.Model):
    """Journal of every stock change"""
    MOVEMENT_IN = 'in'
    MOVEMENT_OUT = 'out'
    MOVEMENT_ADJUSTMENT_IN = 'adjustment_in'
    MOVEMENT_ADJUSTMENT_OUT = 'adjustment_out'
    MOVEMENT_DAMAGED = 'damaged'
    MOVEMENT_EXPIRED = 'expired'

    MOVEMENT_TYPE_CHOICES = [
        (MOVEMENT_IN, 'Stock In'),
        (MOVEMENT_OUT, 'Stock Out'),
        (MOVEMENT_ADJUSTMENT_IN, 'Adjustment In'),
        (MOVEMENT_ADJUSTMENT_OUT, 'Adjustment Out'),
        (MOVEMENT_DAMAGED, 'Damaged'),
        (MOVEMENT_EXPIRED, 'Expired'),
    ]
    INCOMING_TYPES = (MOVEMENT_IN, MOVEMENT_ADJUSTMENT_IN)

    REFERENCE_TYPE_CHOICES = [
        ('sale', 'Sale'),
        ('purchase', 'Purchase'),
        ('manual', 'Manual'),
        ('adjustment', 'Adjustment'),
        ('bulk_update', 'Bulk Update'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    previous_stock = models.PositiveIntegerField(default=0)
    new_stock = models.PositiveIntegerField(default=0)
    reference = models.CharField(max_length=100, blank=True, null=True)
    reference_type = models.CharField(max_length=20, choices=REFERENCE_TYPE_CHOICES, default='manual')
    reason = models.CharField(max_length=255, blank=True, null=True)
    movement_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True, null=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.quantity} x {self.product}"

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['-movement_date', '-id']
        indexes = [
            models.Index(fields=['product', 'movement_date'], name='inv_moves_product_date_idx'),
            models.Index(fields=['movement_type'], name='inv_moves_type_idx'),
        ]

    @property
    def is_incoming(self):
        return self.movement_type in self.INCOMING_TYPES


class StockAlert(models.Model):
    """Open or resolved stock alert for a product"""
    ALERT_LOW_STOCK = 'low_stock'
    ALERT_OUT_OF_STOCK = 'out_of_stock'
    ALERT_EXPIRING_SOON = 'expiring_soon'

    ALERT_TYPE_CHOICES = [
        (ALERT_LOW_STOCK, 'Low Stock'),
        (ALERT_OUT_OF_STOCK, 'Out of Stock'),
        (ALERT_EXPIRING_SOON, 'Expiring Soon'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_alerts')
    alert_type = models.CharField(max_length=20, choices=ALERT_TYPE_CHOICES)
    current_stock = models.PositiveIntegerField(default=0)
    threshold_stock = models.PositiveIntegerField(default=0)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    is_resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_alert_type_display()} - {self.product}"

    class Meta:
        db_table = 'stock_alerts'
        ordering = ['-created_at']

    def resolve(self, notes=None):
        self.is_resolved = True
        self.resolved_at = timezone.now()
        if notes:
            self.notes = notes
        self.save(update_fields=['is_resolved', 'resolved_at', 'notes', 'updated_at'])
