from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal


class CashTransaction(models.Model):
    """Cash register income and expenses"""
    TYPE_INCOME = 'income'
    TYPE_EXPENSE = 'expense'
    TYPE_CHOICES = [
        (TYPE_INCOME, 'Income'),
        (TYPE_EXPENSE, 'Expense'),
    ]

    type = models.CharField(max_length=10, choices=TYPE_CHOICES, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    description = models.CharField(max_length=255)
    reference = models.CharField(max_length=100, blank=True, null=True)
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    transaction_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True, null=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='cash_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} - {self.description}"

    class Meta:
        db_table = 'cash_transactions'
        ordering = ['-transaction_date', '-id']
        indexes = [
            models.Index(fields=['transaction_date', 'type'], name='cash_date_type_idx'),
        ]

    @property
    def signed_amount(self):
        return self.amount if self.type == self.TYPE_INCOME else -self.amount
