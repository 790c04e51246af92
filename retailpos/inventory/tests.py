"""
Test suite for the inventory module
Tests: stock bookkeeping, movements, adjustments, stock alerts
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.inventory.models import InventoryMovement, StockAlert
from retailpos.inventory.services import (
    StockError, change_stock, set_stock, sync_stock_alert, alert_status, resolve_product_alerts
)


class StockServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(stock_quantity=10, minimum_stock=3)

    def test_change_stock_journals_movement(self):
        movement = change_stock(self.product, -4, reference='TEST', user=self.user)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 6)
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_OUT)
        self.assertEqual(movement.quantity, 4)
        self.assertEqual((movement.previous_stock, movement.new_stock), (10, 6))
        self.assertEqual(movement.user, self.user)

    def test_negative_stock_rejected(self):
        with self.assertRaises(StockError):
            change_stock(self.product, -11)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_zero_change_is_ignored(self):
        self.assertIsNone(change_stock(self.product, 0))
        self.assertFalse(InventoryMovement.objects.exists())

    def test_set_stock_uses_adjustments(self):
        movement = set_stock(self.product, 15)
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_ADJUSTMENT_IN)
        movement = set_stock(self.product, 12)
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_ADJUSTMENT_OUT)
        self.assertIsNone(set_stock(self.product, 12))

    def test_alert_lifecycle(self):
        change_stock(self.product, -8)
        alert = StockAlert.objects.get(product=self.product, is_resolved=False)
        self.assertEqual(alert.alert_type, StockAlert.ALERT_LOW_STOCK)
        self.assertEqual(alert.current_stock, 2)

        change_stock(self.product, -2)
        alert.refresh_from_db()
        self.assertEqual(alert.alert_type, StockAlert.ALERT_OUT_OF_STOCK)
        self.assertEqual(alert.priority, 'critical')
        self.assertEqual(StockAlert.objects.filter(product=self.product, is_resolved=False).count(), 1)

        change_stock(self.product, 20)
        alert.refresh_from_db()
        self.assertTrue(alert.is_resolved)
        self.assertIsNotNone(alert.resolved_at)
        self.assertIsNone(sync_stock_alert(self.product))

    def test_alert_status(self):
        self.assertEqual(alert_status(self.product), 'normal')
        self.product.stock_quantity = 3
        self.assertEqual(alert_status(self.product), 'low')
        self.product.stock_quantity = 0
        self.assertEqual(alert_status(self.product), 'critical')

    def test_resolve_product_alerts_lowers_minimum(self):
        change_stock(self.product, -8)
        resolved = resolve_product_alerts(self.product)
        self.assertEqual(resolved, 1)
        self.product.refresh_from_db()
        self.assertEqual(self.product.minimum_stock, 1)
        self.assertFalse(StockAlert.objects.filter(product=self.product, is_resolved=False).exists())


class InventoryApiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['inventory'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category(name='Drinks')
        self.product = TestDataFactory.create_product(
            category=self.category, price=Decimal('10.00'), stock_quantity=10, minimum_stock=3
        )

    def test_overview_by_category(self):
        TestDataFactory.create_category(name='Empty')
        TestDataFactory.create_product(category=self.category, price=Decimal('5.00'), stock_quantity=1,
                                       minimum_stock=2)
        response = self.client.get('/api/v1/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['categories']), 1)
        row = response.data['categories'][0]
        self.assertEqual(row['category'], 'Drinks')
        self.assertEqual(row['totalItems'], 11)
        self.assertEqual(row['totalValue'], 105.0)
        self.assertEqual(row['lowStock'], 1)
        self.assertEqual(response.data['summary']['totalLowStock'], 1)

    def test_manual_movement(self):
        response = self.client.post('/api/v1/inventory/', {
            'product_id': self.product.id, 'movement_type': 'damaged', 'quantity': 2, 'reason': 'Broken bottles',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['new_stock'], 8)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 8)

    def test_manual_movement_cannot_go_negative(self):
        response = self.client.post('/api/v1/inventory/', {
            'product_id': self.product.id, 'movement_type': 'out', 'quantity': 50,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_movement_update_only_touches_notes(self):
        movement = change_stock(self.product, 5)
        response = self.client.patch(f'/api/v1/inventory/{movement.id}/', {
            'notes': 'Checked', 'quantity': 99,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        movement.refresh_from_db()
        self.assertEqual(movement.notes, 'Checked')
        self.assertEqual(movement.quantity, 5)

    def test_movement_delete_keeps_stock(self):
        movement = change_stock(self.product, 5)
        response = self.client.delete(f'/api/v1/inventory/{movement.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)

    def test_movement_filters(self):
        change_stock(self.product, 5)
        change_stock(self.product, -2)
        response = self.client.get('/api/v1/inventory/movements/', {'movement_type': 'out'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/inventory/movements/', {'product_id': self.product.id})
        self.assertEqual(response.data['count'], 2)

    def test_adjustment(self):
        response = self.client.post('/api/v1/inventory/adjustment/', {
            'product_id': self.product.id, 'quantity': -4, 'reason': 'Stock count',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['movement_type'], 'adjustment_out')
        self.assertEqual(response.data['reference'], 'ADJUSTMENT')
        self.assertEqual(response.data['new_stock'], 6)

    def test_zero_adjustment_rejected(self):
        response = self.client.post('/api/v1/inventory/adjustment/', {
            'product_id': self.product.id, 'quantity': 0, 'reason': 'Nothing',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_adjustment_below_zero_rejected(self):
        response = self.client.post('/api/v1/inventory/adjustment/', {
            'product_id': self.product.id, 'quantity': -11, 'reason': 'Loss',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reports(self):
        TestDataFactory.create_product(category=self.category, stock_quantity=0)
        response = self.client.get('/api/v1/inventory/reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['out_of_stock_products']), 1)
        self.assertEqual(response.data['low_stock_products'], [])

    def test_export(self):
        response = self.client.get('/api/v1/inventory/export/', {'format': 'pdf'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')


class StockAlertApiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['stock'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.out = TestDataFactory.create_product(name='Out', stock_quantity=0, minimum_stock=2)
        self.low = TestDataFactory.create_product(name='Low', stock_quantity=2, minimum_stock=5)
        self.fine = TestDataFactory.create_product(name='Fine', stock_quantity=20, minimum_stock=5)

    def test_list_lowest_stock_first(self):
        response = self.client.get('/api/v1/stock-alerts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data['results']], ['Out', 'Low'])
        self.assertEqual(response.data['results'][0]['status'], 'critical')
        statistics = response.data['statistics']
        self.assertEqual((statistics['critical'], statistics['low'], statistics['normal']), (1, 1, 1))

    def test_filter_by_status(self):
        response = self.client.get('/api/v1/stock-alerts/', {'status': 'low'})
        self.assertEqual([row['name'] for row in response.data['results']], ['Low'])

    def test_active(self):
        response = self.client.get('/api/v1/stock-alerts/active/')
        self.assertEqual(len(response.data), 2)

    def test_resolve(self):
        StockAlert.objects.create(product=self.low, alert_type=StockAlert.ALERT_LOW_STOCK, current_stock=2,
                                  threshold_stock=5)
        response = self.client.put(f'/api/v1/stock-alerts/{self.low.id}/resolve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['resolved_alerts'], 1)
        self.low.refresh_from_db()
        self.assertEqual(self.low.minimum_stock, 1)

    def test_check_creates_alerts(self):
        response = self.client.post('/api/v1/stock-alerts/check/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary'], {'critical': 1, 'low': 1, 'total': 2})
        self.assertEqual(StockAlert.objects.filter(is_resolved=False).count(), 2)

        response = self.client.post('/api/v1/stock-alerts/check/')
        self.assertEqual(StockAlert.objects.count(), 2)

    def test_inactive_products_still_counted(self):
        self.out.is_active = False
        self.out.save()
        response = self.client.get('/api/v1/stock-alerts/')
        self.assertEqual([row['name'] for row in response.data['results']], ['Out', 'Low'])
        self.assertEqual(response.data['statistics']['total'], 3)

        response = self.client.post('/api/v1/stock-alerts/check/')
        self.assertEqual(response.data['summary']['critical'], 1)

    def test_alert_record_crud(self):
        response = self.client.post('/api/v1/stock-alerts/records/', {
            'product_id': self.fine.id, 'alert_type': 'expiring_soon', 'current_stock': 20, 'threshold_stock': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        alert_id = response.data['id']

        response = self.client.patch(f'/api/v1/stock-alerts/records/{alert_id}/', {'is_resolved': True},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['resolved_at'])

        response = self.client.delete(f'/api/v1/stock-alerts/records/{alert_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
