"""
Test suite for the purchasing module
Tests: purchase creation, receiving into stock, bulk purchases, reports and exports
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from retailpos.core.models import AuditLog
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.inventory.models import InventoryMovement
from retailpos.purchasing.models import Purchase
from retailpos.purchasing.services import generate_purchase_number


class PurchaseModelTests(TestCase):

    def test_calculate_totals(self):
        purchase = Purchase(quantity=4, unit_cost=Decimal('12.50'), shipping_cost=Decimal('5.00'),
                            tax=Decimal('2.00'))
        purchase.calculate_totals()
        self.assertEqual(purchase.total_cost, Decimal('50.00'))
        self.assertEqual(purchase.final_cost, Decimal('57.00'))

    def test_purchase_number_sequence(self):
        day = date(2024, 3, 9)
        self.assertEqual(generate_purchase_number(day), 'PUR-20240309-0001')


class PurchaseApiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['purchases'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.product = TestDataFactory.create_product(stock_quantity=5, minimum_stock=2)

    def _create(self, **overrides):
        payload = {
            'product_id': self.product.id, 'supplier_id': self.supplier.id, 'quantity': 10,
            'unit_cost': '20.00', 'shipping_cost': '5.00', 'tax': '3.00', 'payment_method': 'cash',
        }
        payload.update(overrides)
        return self.client.post('/api/v1/purchases/', payload, format='json')

    def test_accepts_ten_digit_costs(self):
        response = self._create(quantity=1, unit_cost='1500000000.00', shipping_cost='0.00', tax='0.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['final_cost']), Decimal('1500000000.00'))

    def test_create_pending_purchase_leaves_stock(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['purchase_number'].startswith(
            f"PUR-{timezone.localdate().strftime('%Y%m%d')}-"))
        self.assertEqual(Decimal(response.data['final_cost']), Decimal('208.00'))
        self.assertEqual(response.data['status'], 'pending')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

    def test_purchase_numbers_increment(self):
        first = self._create().data['purchase_number']
        second = self._create().data['purchase_number']
        self.assertEqual(int(second[-4:]), int(first[-4:]) + 1)

    def test_create_received_purchase_adds_stock(self):
        response = self._create(status='received')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'received')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)

    def test_receive(self):
        purchase_id = self._create().data['id']
        response = self.client.put(f'/api/v1/purchases/{purchase_id}/receive/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'received')
        self.assertEqual(response.data['received_date'], timezone.localdate().isoformat())

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)
        movement = self.product.movements.get()
        self.assertEqual(movement.reference_type, 'purchase')
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_IN)
        self.assertTrue(AuditLog.objects.filter(action='purchase_receive').exists())

    def test_receive_twice_rejected(self):
        purchase_id = self._create().data['id']
        self.client.put(f'/api/v1/purchases/{purchase_id}/receive/')
        response = self.client.put(f'/api/v1/purchases/{purchase_id}/receive/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)

    def test_receive_cancelled_rejected(self):
        purchase_id = self._create(status='cancelled').data['id']
        response = self.client.put(f'/api/v1/purchases/{purchase_id}/receive/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recalculates_totals(self):
        purchase_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['final_cost']), Decimal('48.00'))

    def test_status_change_to_received_adds_stock(self):
        purchase_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)

    def test_received_purchase_is_locked(self):
        purchase_id = self._create(status='received').data['id']
        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'quantity': 99}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'notes': 'Invoice filed'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_delete_received_refused(self):
        purchase_id = self._create(status='received').data['id']
        response = self.client.delete(f'/api/v1/purchases/{purchase_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_pending(self):
        purchase_id = self._create().data['id']
        response = self.client.delete(f'/api/v1/purchases/{purchase_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_expected_date_before_order_date_rejected(self):
        response = self._create(order_date='2024-05-10', expected_delivery_date='2024-05-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        self._create()
        other_supplier = TestDataFactory.create_supplier()
        self._create(supplier_id=other_supplier.id, status='received')
        response = self.client.get('/api/v1/purchases/', {'status': 'received'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/purchases/', {'supplier_id': self.supplier.id})
        self.assertEqual(response.data['count'], 1)

    def test_bulk_purchase(self):
        other = TestDataFactory.create_product(stock_quantity=0)
        response = self.client.post('/api/v1/purchases/bulk/', {'purchases': [
            {'product_id': self.product.id, 'supplier_id': self.supplier.id, 'quantity': 2, 'unit_cost': '10.00',
             'shipping_cost': '1.00', 'payment_method': 'card', 'order_date': '2024-06-01'},
            {'product_id': other.id, 'supplier_id': self.supplier.id, 'quantity': 3, 'unit_cost': '5.00',
             'tax': '0.50', 'payment_method': 'cash', 'order_date': '2024-06-02'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['purchase_type'], 'bulk')
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['payment_method'], 'card')
        self.assertEqual(response.data['order_date'], '2024-06-01')
        self.assertEqual(len(response.data['products']), 2)
        self.assertEqual(Decimal(response.data['final_cost']), Decimal('36.50'))

        response = self.client.put(f"/api/v1/purchases/{response.data['id']}/receive/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 7)
        self.assertEqual(other.stock_quantity, 3)

    def test_bulk_purchase_lines_are_read_only(self):
        response = self.client.post('/api/v1/purchases/bulk/', {'purchases': [
            {'product_id': self.product.id, 'supplier_id': self.supplier.id, 'quantity': 2, 'unit_cost': '10.00',
             'payment_method': 'card', 'order_date': '2024-06-01'},
        ]}, format='json')
        purchase_id = response.data['id']

        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'quantity': 9}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        purchase = Purchase.objects.get(pk=purchase_id)
        self.assertEqual(purchase.quantity, 2)
        self.assertEqual(purchase.final_cost, Decimal('20.00'))

        response = self.client.patch(f'/api/v1/purchases/{purchase_id}/', {'notes': 'Call before delivery'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_reports(self):
        self._create()
        self._create(status='received')
        response = self.client.get('/api/v1/purchases/reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_purchases'], 2)
        self.assertEqual(response.data['pending_purchases'], 1)
        self.assertEqual(response.data['received_purchases'], 1)
        self.assertEqual(response.data['total_amount'], 416.0)
        self.assertEqual(response.data['top_suppliers'][0]['supplier_id'], self.supplier.id)

    def test_export(self):
        self._create()
        response = self.client.get('/api/v1/purchases/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/export/purchases/', {'format': 'pdf'})
        self.assertEqual(response['Content-Type'], 'application/pdf')
