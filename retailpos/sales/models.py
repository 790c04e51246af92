from django.conf import settings
from django.db import models
from django.utils import timezone
from decimal import Decimal

from retailpos.catalog.models import Product
from retailpos.parties.models import Customer

ANONYMOUS_CUSTOMER_NAME = 'Anonymous customer'

PAYMENT_METHOD_CHOICES = [
    ('cash', 'Cash'),
    ('card', 'Card'),
    ('bank_transfer', 'Bank Transfer'),
    ('transfer', 'Transfer'),
    ('check', 'Check'),
]


class Sale(models.Model):
    """Sale of one product, or of several lines for bulk sales"""
    STATUS_COMPLETED = 'completed'
    STATUS_PENDING = 'pending'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TYPE_SINGLE = 'single'
    TYPE_BULK = 'bulk'
    SALE_TYPE_CHOICES = [
        (TYPE_SINGLE, 'Single'),
        (TYPE_BULK, 'Bulk'),
    ]

    invoice_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales')
    products = models.JSONField(null=True, blank=True, help_text='Sale lines of a bulk sale')
    sale_type = models.CharField(max_length=10, choices=SALE_TYPE_CHOICES, default=TYPE_SINGLE)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    final_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    customer_name = models.CharField(max_length=255, default=ANONYMOUS_CUSTOMER_NAME)
    customer_email = models.EmailField(blank=True, null=True)
    customer_phone = models.CharField(max_length=20, blank=True, null=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED, db_index=True)
    sale_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'sales'
        ordering = ['-sale_date', '-id']
        indexes = [
            models.Index(fields=['sale_date'], name='sales_sale_date_idx'),
            models.Index(fields=['status', 'sale_date'], name='sales_status_date_idx'),
        ]

    def calculate_totals(self):
        self.total_amount = (self.unit_price or Decimal('0.00')) * self.quantity
        self.final_amount = self.total_amount - (self.discount or Decimal('0.00')) + (self.tax or Decimal('0.00'))

    def get_lines(self):
        """Lines as (product_id, quantity) pairs, the main product for single sales"""
        if self.sale_type == self.TYPE_BULK and self.products:
            return [(int(line['product_id']), int(line['quantity'])) for line in self.products]
        return [(self.product_id, self.quantity)]
