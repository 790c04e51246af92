import random

from django.db import models
from django.db.models import Sum
from django.utils import timezone
from decimal import Decimal


class Customer(models.Model):
    """Customers, optionally enrolled in the loyalty programme"""
    name = models.CharField(max_length=255, db_index=True)
    email = models.EmailField(unique=True, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    barcode = models.CharField(max_length=50, unique=True, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    is_loyalty = models.BooleanField(default=False, db_index=True)
    loyalty_card_number = models.CharField(max_length=50, unique=True, blank=True, null=True)
    loyalty_start_date = models.DateField(blank=True, null=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'customers'
        ordering = ['name']

    @staticmethod
    def generate_loyalty_card_number():
        """LOY + year + 4 random digits, unique among customers"""
        year = timezone.now().year
        while True:
            number = f"LOY{year}{random.randint(0, 9999):04d}"
            if not Customer.objects.filter(loyalty_card_number=number).exists():
                return number

    @staticmethod
    def generate_barcode():
        """CUST + year + 5 random digits, unique among customers"""
        year = timezone.now().year
        while True:
            code = f"CUST{year}{random.randint(0, 99999):05d}"
            if not Customer.objects.filter(barcode=code).exists():
                return code

    def enroll_loyalty(self):
        """Turn on loyalty, assigning a card number and start date when missing"""
        self.is_loyalty = True
        if not self.loyalty_card_number:
            self.loyalty_card_number = self.generate_loyalty_card_number()
        if not self.loyalty_start_date:
            self.loyalty_start_date = timezone.localdate()

    def add_loyalty_points(self, points):
        self.loyalty_points = models.F('loyalty_points') + int(points)
        self.save(update_fields=['loyalty_points', 'updated_at'])
        self.refresh_from_db(fields=['loyalty_points'])

    def use_loyalty_points(self, points):
        """Spend points; returns False without changing anything when the balance is too low"""
        points = int(points)
        if points > self.loyalty_points:
            return False
        self.loyalty_points -= points
        self.save(update_fields=['loyalty_points', 'updated_at'])
        return True

    @property
    def total_purchases(self):
        return self.sales.count()

    @property
    def total_spent(self):
        return self.sales.aggregate(total=Sum('final_amount'))['total'] or Decimal('0.00')


class Supplier(models.Model):
    """Suppliers"""
    name = models.CharField(max_length=255, db_index=True)
    contact_person = models.CharField(max_length=255, blank=True, null=True)
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    city = models.CharField(max_length=255, blank=True, null=True)
    country = models.CharField(max_length=255, blank=True, null=True)
    postal_code = models.CharField(max_length=20, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']

    @property
    def orders_count(self):
        return self.purchases.count()

    @property
    def total_spent(self):
        return self.purchases.aggregate(total=Sum('final_cost'))['total'] or Decimal('0.00')
