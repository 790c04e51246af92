from django.conf import settings
from django.db import models
from django.utils import timezone
from decimal import Decimal

from retailpos.catalog.models import Product
from retailpos.parties.models import Supplier

PAYMENT_METHOD_CHOICES = [
    ('cash', 'Cash'),
    ('card', 'Card'),
    ('bank_transfer', 'Bank Transfer'),
    ('credit', 'Credit'),
]


class Purchase(models.Model):
    """Stock purchase from a supplier, single product or several lines"""
    STATUS_PENDING = 'pending'
    STATUS_RECEIVED = 'received'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_RECEIVED, 'Received'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TYPE_SINGLE = 'single'
    TYPE_BULK = 'bulk'
    PURCHASE_TYPE_CHOICES = [
        (TYPE_SINGLE, 'Single'),
        (TYPE_BULK, 'Bulk'),
    ]

    purchase_number = models.CharField(max_length=50, unique=True)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchases')
    products = models.JSONField(null=True, blank=True, help_text='Purchase lines of a bulk purchase')
    purchase_type = models.CharField(max_length=10, choices=PURCHASE_TYPE_CHOICES, default=TYPE_SINGLE)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchases')
    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    final_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchases'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.purchase_number

    class Meta:
        db_table = 'purchases'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['order_date'], name='purchases_order_date_idx'),
            models.Index(fields=['supplier', 'status'], name='purchases_supplier_status_idx'),
        ]

    def calculate_totals(self):
        self.total_cost = (self.unit_cost or Decimal('0.00')) * self.quantity
        self.final_cost = self.total_cost + (self.shipping_cost or Decimal('0.00')) + (self.tax or Decimal('0.00'))

    def get_lines(self):
        """Lines as (product_id, quantity) pairs, the main product for single purchases"""
        if self.purchase_type == self.TYPE_BULK and self.products:
            return [(int(line['product_id']), int(line['quantity'])) for line in self.products]
        return [(self.product_id, self.quantity)]

    @property
    def is_received(self):
        return self.status == self.STATUS_RECEIVED
