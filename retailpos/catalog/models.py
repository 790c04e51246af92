from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal

STOCK_IN = 'in_stock'
STOCK_LOW = 'low_stock'
STOCK_OUT = 'out_of_stock'
STOCK_STATUS_CHOICES = [
    (STOCK_IN, 'In Stock'),
    (STOCK_LOW, 'Low Stock'),
    (STOCK_OUT, 'Out of Stock'),
]


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True, null=True)
    color = models.CharField(max_length=7, default='#3B82F6', help_text='Hex color used by the UI')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        ordering = ['name']
        verbose_name_plural = 'categories'


class Product(models.Model):
    """Products sold in the shop"""
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    loyalty_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text='Price applied to loyalty customers'
    )
    cost_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    barcode = models.CharField(max_length=100, unique=True, null=True, blank=True)
    sku = models.CharField(max_length=100, unique=True, null=True, blank=True)
    stock_quantity = models.PositiveIntegerField(default=0)
    minimum_stock = models.PositiveIntegerField(default=0)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    supplier = models.ForeignKey(
        'parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='products'
    )
    is_active = models.BooleanField(default=True, db_index=True)
    photo = models.ImageField(upload_to='products/', null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['stock_quantity'], name='products_stock_idx'),
            models.Index(fields=['category', 'is_active'], name='products_category_active_idx'),
        ]

    def has_low_stock(self):
        return self.stock_quantity <= self.minimum_stock

    def is_out_of_stock(self):
        return self.stock_quantity <= 0

    @property
    def stock_status(self):
        if self.is_out_of_stock():
            return STOCK_OUT
        if self.has_low_stock():
            return STOCK_LOW
        return STOCK_IN

    def photo_url(self, request=None):
        """Absolute URL of the product photo when a request is available, else the media path"""
        if not self.photo:
            return None
        url = self.photo.url
        return request.build_absolute_uri(url) if request else url

    def get_price_for(self, customer=None):
        """Unit price for `customer`: the loyalty price for loyalty members when set"""
        if customer is not None and customer.is_loyalty and self.loyalty_price is not None:
            return self.loyalty_price
        return self.price

    @property
    def stock_value(self):
        return (self.price or Decimal('0.00')) * self.stock_quantity
