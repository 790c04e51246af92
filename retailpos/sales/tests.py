"""
Test suite for the sales module
Tests: sale recording, loyalty pricing, stock bookkeeping on edit and delete, bulk sales, reports
"""
import io
from datetime import date
from decimal import Decimal

from django.test import TestCase
from openpyxl import load_workbook
from rest_framework import status

from retailpos.core.models import AuditLog
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.inventory.models import InventoryMovement
from retailpos.sales.models import Sale, ANONYMOUS_CUSTOMER_NAME


class SaleApiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(
            price=Decimal('10.00'), loyalty_price=Decimal('8.00'), stock_quantity=10, minimum_stock=2
        )

    def _sell(self, **overrides):
        payload = {'product_id': self.product.id, 'quantity': 2, 'payment_method': 'cash'}
        payload.update(overrides)
        return self.client.post('/api/v1/sales/', payload, format='json')

    def test_create_sale_takes_stock(self):
        response = self._sell(discount='1.00', tax='0.50')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['invoice_number'].startswith('INV-'))
        self.assertEqual(Decimal(response.data['unit_price']), Decimal('10.00'))
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('20.00'))
        self.assertEqual(Decimal(response.data['final_amount']), Decimal('19.50'))
        self.assertEqual(response.data['customer_name'], ANONYMOUS_CUSTOMER_NAME)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 8)
        movement = self.product.movements.get()
        self.assertEqual(movement.movement_type, InventoryMovement.MOVEMENT_OUT)
        self.assertEqual(movement.reference, response.data['invoice_number'])
        self.assertTrue(AuditLog.objects.filter(action='stock_sale').exists())

    def test_insufficient_stock_rejected(self):
        response = self._sell(quantity=11)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertFalse(Sale.objects.exists())
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_discount_above_total_rejected(self):
        response = self._sell(discount='50.00')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_loyalty_customer_pays_loyalty_price_and_earns_points(self):
        customer = TestDataFactory.create_customer(name='Salma', is_loyalty=True)
        response = self._sell(quantity=3, customer_id=customer.id)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['unit_price']), Decimal('8.00'))
        self.assertEqual(Decimal(response.data['final_amount']), Decimal('24.00'))
        self.assertEqual(response.data['customer_name'], 'Salma')
        customer.refresh_from_db()
        self.assertEqual(customer.loyalty_points, 24)

    def test_regular_customer_pays_list_price(self):
        customer = TestDataFactory.create_customer()
        response = self._sell(customer_id=customer.id)
        self.assertEqual(Decimal(response.data['unit_price']), Decimal('10.00'))
        customer.refresh_from_db()
        self.assertEqual(customer.loyalty_points, 0)

    def test_update_quantity_moves_difference(self):
        sale_id = self._sell().data['id']
        response = self.client.patch(f'/api/v1/sales/{sale_id}/', {'quantity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['final_amount']), Decimal('50.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 5)

        self.client.patch(f'/api/v1/sales/{sale_id}/', {'quantity': 1}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 9)

    def test_update_beyond_stock_rejected(self):
        sale_id = self._sell().data['id']
        response = self.client.patch(f'/api/v1/sales/{sale_id}/', {'quantity': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Sale.objects.get(pk=sale_id).quantity, 2)

    def test_cancelling_returns_stock(self):
        sale_id = self._sell().data['id']
        self.client.patch(f'/api/v1/sales/{sale_id}/', {'status': 'cancelled'}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_change_product(self):
        other = TestDataFactory.create_product(price=Decimal('4.00'), stock_quantity=3)
        sale_id = self._sell().data['id']
        response = self.client.patch(f'/api/v1/sales/{sale_id}/', {'product_id': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['unit_price']), Decimal('4.00'))
        self.product.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertEqual(other.stock_quantity, 1)

    def test_delete_returns_stock(self):
        sale_id = self._sell(quantity=4).data['id']
        response = self.client.delete(f'/api/v1/sales/{sale_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertEqual(self.product.movements.filter(movement_type=InventoryMovement.MOVEMENT_IN).count(), 1)

    def test_list_filters(self):
        self._sell(payment_method='card')
        self._sell()
        response = self.client.get('/api/v1/sales/', {'payment_method': 'card'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/sales/', {'sort_by': 'final_amount', 'sort_order': 'asc'})
        self.assertEqual(response.data['count'], 2)


class BulkSaleTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.first = TestDataFactory.create_product(name='Rice', stock_quantity=10)
        self.second = TestDataFactory.create_product(name='Oil', stock_quantity=4)
        self.customer = TestDataFactory.create_customer(name='Karim')

    def _line(self, product, quantity, total, **extra):
        line = {
            'product_id': product.id, 'quantity': quantity, 'unit_price': '5.00', 'total_amount': total,
            'payment_method': 'cash', 'sale_date': '2024-07-01',
        }
        line.update(extra)
        return line

    def test_bulk_sale(self):
        response = self.client.post('/api/v1/sales/bulk/', {'sales': [
            self._line(self.first, 2, '10.00', customer_id=self.customer.id),
            self._line(self.second, 3, '15.00'),
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sale_type'], 'bulk')
        self.assertEqual(response.data['quantity'], 5)
        self.assertEqual(Decimal(response.data['final_amount']), Decimal('25.00'))
        self.assertEqual(response.data['customer_name'], 'Karim')
        self.assertEqual(len(response.data['products']), 2)

        self.first.refresh_from_db()
        self.second.refresh_from_db()
        self.assertEqual((self.first.stock_quantity, self.second.stock_quantity), (8, 1))

    def test_bulk_sale_checks_all_stock_first(self):
        response = self.client.post('/api/v1/sales/bulk/', {'sales': [
            self._line(self.first, 2, '10.00'),
            self._line(self.second, 5, '25.00'),
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Oil', response.data['error'])
        self.first.refresh_from_db()
        self.assertEqual(self.first.stock_quantity, 10)
        self.assertFalse(Sale.objects.exists())

    def test_bulk_sale_unknown_customer(self):
        response = self.client.post('/api/v1/sales/bulk/', {'sales': [
            self._line(self.first, 1, '5.00', customer_id=999999),
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_lines_cannot_be_edited(self):
        sale_id = self.client.post('/api/v1/sales/bulk/', {'sales': [
            self._line(self.first, 1, '5.00'),
        ]}, format='json').data['id']
        response = self.client.patch(f'/api/v1/sales/{sale_id}/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_bulk_sale_restores_every_line(self):
        sale_id = self.client.post('/api/v1/sales/bulk/', {'sales': [
            self._line(self.first, 2, '10.00'),
            self._line(self.second, 4, '20.00'),
        ]}, format='json').data['id']
        self.client.delete(f'/api/v1/sales/{sale_id}/')
        self.first.refresh_from_db()
        self.second.refresh_from_db()
        self.assertEqual((self.first.stock_quantity, self.second.stock_quantity), (10, 4))


class SaleReportTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(name='Coffee', price=Decimal('30.00'))

    def test_reports(self):
        TestDataFactory.create_sale(self.product, quantity=2)
        TestDataFactory.create_sale(self.product, quantity=1, status='pending')
        response = self.client.get('/api/v1/sales/reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_sales'], 2)
        self.assertEqual(response.data['completed_sales'], 1)
        self.assertEqual(response.data['pending_sales'], 1)
        self.assertEqual(response.data['total_revenue'], 90.0)
        top = response.data['top_products'][0]
        self.assertEqual((top['product_name'], top['total_quantity']), ('Coffee', 3))

    def test_export(self):
        TestDataFactory.create_sale(self.product)
        response = self.client.get('/api/v1/sales/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('spreadsheetml', response['Content-Type'])
        response = self.client.get('/api/v1/sales/export/', {'format': 'pdf'})
        self.assertEqual(response['Content-Type'], 'application/pdf')

    def test_excel_export_shows_period(self):
        sale = TestDataFactory.create_sale(self.product, sale_date=date(2024, 3, 10))
        response = self.client.get('/api/v1/sales/export/', {
            'start_date': '2024-03-01', 'end_date': '2024-03-31',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sheet = load_workbook(io.BytesIO(response.content)).active
        self.assertEqual(sheet['A3'].value, 'Period: 2024-03-01 to 2024-03-31')
        self.assertEqual(sheet['A5'].value, 'Invoice')
        self.assertEqual(sheet['A6'].value, sale.invoice_number)

    def test_invoice_pdf(self):
        sale = TestDataFactory.create_sale(self.product)
        response = self.client.get(f'/api/v1/pdf/invoice/{sale.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(sale.invoice_number, response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))
