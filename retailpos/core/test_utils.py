"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from retailpos.cash.models import CashTransaction
from retailpos.catalog.models import Category, Product
from retailpos.core.models import PagePermission, PAGE_PERMISSIONS, ROLE_ADMIN, ROLE_CASHIER
from retailpos.parties.models import Customer, Supplier
from retailpos.purchasing.models import Purchase
from retailpos.sales.models import Sale

User = get_user_model()

TEST_PASSWORD = 'Str0ngPass!23'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_page_permissions():
        """Create every page permission"""
        for name, display_name, description in PAGE_PERMISSIONS:
            PagePermission.objects.get_or_create(
                name=name, defaults={'display_name': display_name, 'description': description}
            )
        return PagePermission.objects.all()

    @staticmethod
    def create_user(email=None, password=TEST_PASSWORD, name=None, role=ROLE_CASHIER, pages=None):
        """Create a test user holding `role` and the given page permission names"""
        username = f'user_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            name=name or username,
        )
        if role:
            group, _ = Group.objects.get_or_create(name=role)
            user.groups.add(group)
        if pages:
            TestDataFactory.create_page_permissions()
            user.page_permissions.set(PagePermission.objects.filter(name__in=pages))
        return user

    @staticmethod
    def create_admin(email=None, password=TEST_PASSWORD):
        """Create a user with the admin role"""
        return TestDataFactory.create_user(email=email, password=password, role=ROLE_ADMIN)

    @staticmethod
    def create_category(name=None, description=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Test category {name}'
        )

    @staticmethod
    def create_supplier(name=None, is_active=True):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            name=name,
            contact_person='Test Contact',
            phone='0600000000',
            is_active=is_active,
        )

    @staticmethod
    def create_customer(name=None, is_loyalty=False, loyalty_points=0):
        """Create a test customer; loyalty members get a card number"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        customer = Customer.objects.create(
            name=name,
            phone='0611111111',
            barcode=Customer.generate_barcode(),
            loyalty_points=loyalty_points,
        )
        if is_loyalty:
            customer.enroll_loyalty()
            customer.save()
        return customer

    @staticmethod
    def create_product(name=None, price=Decimal('100.00'), stock_quantity=10, minimum_stock=2,
                       category=None, supplier=None, loyalty_price=None, barcode=None):
        """Create a test product; stock is set directly, without a movement"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not category:
            category = TestDataFactory.create_category()
        return Product.objects.create(
            name=name,
            price=price,
            loyalty_price=loyalty_price,
            cost_price=price / 2,
            barcode=barcode or f'BC{TestDataFactory.random_string(10)}',
            stock_quantity=stock_quantity,
            minimum_stock=minimum_stock,
            category=category,
            supplier=supplier,
        )

    @staticmethod
    def create_sale(product, quantity=1, customer=None, user=None, status=Sale.STATUS_COMPLETED,
                    sale_date=None, invoice_number=None):
        """Create a sale row directly, without touching stock"""
        sale = Sale(
            invoice_number=invoice_number or f'INV-TEST-{TestDataFactory.random_string(6)}',
            customer=customer,
            customer_name=customer.name if customer else 'Anonymous customer',
            product=product,
            quantity=quantity,
            unit_price=product.price,
            status=status,
            sale_date=sale_date or timezone.localdate(),
            created_by=user,
        )
        sale.calculate_totals()
        sale.save()
        return sale

    @staticmethod
    def create_purchase(product, supplier, quantity=5, unit_cost=Decimal('40.00'), user=None,
                        status=Purchase.STATUS_PENDING, order_date=None):
        """Create a purchase row directly, without touching stock"""
        purchase = Purchase(
            purchase_number=f'PUR-TEST-{TestDataFactory.random_string(6)}',
            product=product,
            supplier=supplier,
            quantity=quantity,
            unit_cost=unit_cost,
            status=status,
            order_date=order_date or timezone.localdate(),
            created_by=user,
        )
        purchase.calculate_totals()
        purchase.save()
        return purchase

    @staticmethod
    def create_cash_transaction(amount=Decimal('100.00'), type=CashTransaction.TYPE_INCOME,
                                transaction_date=None, user=None, description=None):
        """Create a test cash transaction"""
        return CashTransaction.objects.create(
            type=type,
            amount=amount,
            description=description or f'Transaction {TestDataFactory.random_string(6)}',
            payment_method='cash',
            transaction_date=transaction_date or timezone.localdate(),
            user=user,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
