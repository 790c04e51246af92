from django.contrib.auth.models import AbstractUser
from django.db import models

ROLE_ADMIN = 'admin'
ROLE_CASHIER = 'cashier'

ROLE_CHOICES = [
    (ROLE_ADMIN, 'Administrator'),
    (ROLE_CASHIER, 'Cashier'),
]

# name, display name, description
PAGE_PERMISSIONS = [
    ('dashboard', 'Dashboard', 'View the dashboard and statistics'),
    ('products', 'Products', 'Manage products'),
    ('categories', 'Categories', 'Manage product categories'),
    ('cash', 'Cash', 'Manage cash transactions'),
    ('sales', 'Sales', 'Record and manage sales'),
    ('purchases', 'Purchases', 'Record and manage purchases'),
    ('suppliers', 'Suppliers', 'Manage suppliers'),
    ('customers', 'Customers', 'Manage customers and loyalty'),
    ('stock', 'Stock Alerts', 'View and resolve stock alerts'),
    ('inventory', 'Inventory', 'View inventory and record movements'),
    ('users', 'Users', 'Manage users and permissions'),
    ('profile', 'Profile', 'Edit own profile'),
]


class PagePermission(models.Model):
    """A page of the admin dashboard a user may be allowed to open"""
    name = models.CharField(max_length=50, unique=True)
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name

    class Meta:
        db_table = 'page_permissions'
        ordering = ['id']


class User(AbstractUser):
    """Shop user. Logs in with email; role is carried by group membership."""
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    page_permissions = models.ManyToManyField(PagePermission, blank=True, related_name='users')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def __str__(self):
        return self.name or self.email

    class Meta:
        db_table = 'users'

    def save(self, *args, **kwargs):
        # username mirrors email so both unique indexes agree
        if self.email:
            self.username = self.email
            update_fields = kwargs.get('update_fields')
            if update_fields is not None and 'email' in update_fields:
                kwargs['update_fields'] = set(update_fields) | {'username'}
        super().save(*args, **kwargs)

    @property
    def role(self):
        names = [g.name for g in self.groups.all()]
        if ROLE_ADMIN in names:
            return ROLE_ADMIN
        if ROLE_CASHIER in names:
            return ROLE_CASHIER
        return ROLE_ADMIN if self.is_superuser else None

    def is_admin_role(self):
        return self.is_superuser or self.groups.filter(name=ROLE_ADMIN).exists()

    def get_page_permission_names(self):
        if self.is_admin_role():
            return list(PagePermission.objects.values_list('name', flat=True))
        return list(self.page_permissions.values_list('name', flat=True))

    def has_page_permission(self, name):
        if self.is_admin_role():
            return True
        return self.page_permissions.filter(name=name).exists()


class AuditLog(models.Model):
    """Audit log for business operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('password_change', 'Password Change'),
        ('stock_adjust', 'Stock Adjustment'),
        ('stock_purchase', 'Stock Added (Purchase)'),
        ('stock_sale', 'Stock Removed (Sale)'),
        ('purchase_receive', 'Purchase Received'),
        ('loyalty_points', 'Loyalty Points'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., invoice number, purchase number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.action} - {self.model_name} ({self.object_id})"
