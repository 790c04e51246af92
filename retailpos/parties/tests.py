"""
Test suite for the parties module
Tests: customers, loyalty programme, suppliers and their statistics
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.parties.models import Customer, Supplier


class CustomerTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['customers'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer_generates_barcode(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Amina', 'email': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['barcode'].startswith('CUST'))
        self.assertIsNone(response.data['email'])
        self.assertFalse(response.data['is_loyalty'])

    def test_create_loyalty_customer_gets_card(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Youssef', 'is_loyalty': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['loyalty_card_number'].startswith('LOY'))
        self.assertIsNotNone(response.data['loyalty_start_date'])
        self.assertEqual(response.data['loyalty_points'], 0)

    def test_filter_by_loyalty(self):
        TestDataFactory.create_customer(is_loyalty=True)
        TestDataFactory.create_customer()
        response = self.client.get('/api/v1/customers/', {'loyalty': 'true'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/customers/', {'loyalty': 'false'})
        self.assertEqual(response.data['count'], 1)

    def test_list_annotates_sales(self):
        customer = TestDataFactory.create_customer()
        product = TestDataFactory.create_product(price=Decimal('25.00'))
        TestDataFactory.create_sale(product, quantity=2, customer=customer)
        response = self.client.get('/api/v1/customers/')
        row = response.data['results'][0]
        self.assertEqual(row['sales_count'], 1)
        self.assertEqual(row['sales_total'], 50.0)

    def test_detail_includes_recent_sales(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_sale(TestDataFactory.create_product(), customer=customer)
        response = self.client.get(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['recent_sales']), 1)

    def test_delete_customer_with_sales_refused(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_sale(TestDataFactory.create_product(), customer=customer)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_barcode_lookup_matches_card_number(self):
        customer = TestDataFactory.create_customer(is_loyalty=True)
        response = self.client.get(f'/api/v1/customers/barcode/{customer.loyalty_card_number}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], customer.id)
        response = self.client.get('/api/v1/customers/barcode/UNKNOWN/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_toggle_loyalty(self):
        customer = TestDataFactory.create_customer()
        response = self.client.put(f'/api/v1/customers/{customer.id}/toggle-loyalty/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_loyalty'])
        card = response.data['loyalty_card_number']
        self.assertIsNotNone(card)

        response = self.client.put(f'/api/v1/customers/{customer.id}/toggle-loyalty/')
        self.assertFalse(response.data['is_loyalty'])
        response = self.client.put(f'/api/v1/customers/{customer.id}/toggle-loyalty/')
        self.assertEqual(response.data['loyalty_card_number'], card)

    def test_add_points(self):
        customer = TestDataFactory.create_customer(is_loyalty=True, loyalty_points=10)
        response = self.client.post(f'/api/v1/customers/{customer.id}/add-points/', {'points': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['loyalty_points'], 15)

    def test_add_zero_points_rejected(self):
        customer = TestDataFactory.create_customer()
        response = self.client.post(f'/api/v1/customers/{customer.id}/add-points/', {'points': 0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_statistics(self):
        TestDataFactory.create_customer(is_loyalty=True, loyalty_points=30)
        TestDataFactory.create_customer(loyalty_points=0)
        response = self.client.get('/api/v1/customers/statistics/')
        self.assertEqual(response.data['total_customers'], 2)
        self.assertEqual(response.data['loyalty_customers'], 1)
        self.assertEqual(response.data['non_loyalty_customers'], 1)
        self.assertEqual(response.data['total_loyalty_points'], 30)


class CustomerModelTests(TestCase):

    def test_use_loyalty_points(self):
        customer = TestDataFactory.create_customer(is_loyalty=True, loyalty_points=10)
        self.assertFalse(customer.use_loyalty_points(20))
        self.assertTrue(customer.use_loyalty_points(4))
        customer.refresh_from_db()
        self.assertEqual(customer.loyalty_points, 6)

    def test_generated_number_formats(self):
        self.assertRegex(Customer.generate_loyalty_card_number(), r'^LOY\d{8}$')
        self.assertRegex(Customer.generate_barcode(), r'^CUST\d{9}$')


class SupplierTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['suppliers'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list_with_statistics(self):
        response = self.client.post('/api/v1/suppliers/', {'name': 'Atlas Foods', 'city': 'Rabat'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        TestDataFactory.create_supplier(is_active=False)

        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['statistics']['active'], 1)
        self.assertEqual(response.data['statistics']['inactive'], 1)

    def test_filter_by_status(self):
        TestDataFactory.create_supplier()
        TestDataFactory.create_supplier(is_active=False)
        response = self.client.get('/api/v1/suppliers/', {'status': 'inactive'})
        self.assertEqual(response.data['count'], 1)

    def test_toggle_status(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.put(f'/api/v1/suppliers/{supplier.id}/toggle-status/')
        self.assertFalse(response.data['is_active'])
        supplier.refresh_from_db()
        self.assertFalse(supplier.is_active)

    def test_products_and_purchases(self):
        supplier = TestDataFactory.create_supplier()
        product = TestDataFactory.create_product(supplier=supplier)
        TestDataFactory.create_purchase(product, supplier, quantity=3, unit_cost=Decimal('10.00'))

        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/products/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/purchases/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(len(response.data['recent_purchases']), 1)
        self.assertEqual(response.data['orders_count'], 1)
        self.assertEqual(response.data['total_spent'], 30.0)

    def test_delete_supplier_with_purchases_refused(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase(TestDataFactory.create_product(), supplier)
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Supplier.objects.filter(pk=supplier.id).exists())

    def test_statistics_top_suppliers(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase(TestDataFactory.create_product(), supplier)
        response = self.client.get('/api/v1/suppliers/statistics/')
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(len(response.data['top_suppliers']), 1)
