"""
Test suite for the reports module
Tests: dashboard figures, cache invalidation, recent activities, PDF reports, export aliases
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from retailpos.cash.models import CashTransaction
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailpos.inventory.services import sync_stock_alert


class DashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(pages=['dashboard'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.today = timezone.localdate()

    def test_daily_stats_compare_with_yesterday(self):
        product = TestDataFactory.create_product(stock_quantity=1, minimum_stock=2)
        TestDataFactory.create_cash_transaction(amount=Decimal('150.00'))
        TestDataFactory.create_cash_transaction(amount=Decimal('100.00'),
                                                transaction_date=self.today - timedelta(days=1))
        TestDataFactory.create_sale(product)
        TestDataFactory.create_sale(product, status='cancelled')

        response = self.client.get('/api/v1/dashboard/daily-stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], self.today.isoformat())
        self.assertEqual(response.data['cash_income']['today'], 150.0)
        self.assertEqual(response.data['cash_income']['yesterday'], 100.0)
        self.assertEqual(response.data['cash_income']['change_percentage'], 50.0)
        self.assertEqual(response.data['sales_count']['today'], 1)
        self.assertEqual(response.data['product_count'], 1)
        self.assertEqual(response.data['stock_alerts'], 1)

    def test_stats(self):
        TestDataFactory.create_product(price=Decimal('10.00'), stock_quantity=5, minimum_stock=1)
        TestDataFactory.create_product(stock_quantity=0)
        TestDataFactory.create_cash_transaction(amount=Decimal('80.00'))
        TestDataFactory.create_cash_transaction(amount=Decimal('30.00'), type=CashTransaction.TYPE_EXPENSE)

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 2)
        self.assertEqual(response.data['out_of_stock_products'], 1)
        self.assertEqual(response.data['low_stock_products'], 0)
        self.assertEqual(response.data['stock_value'], 50.0)
        self.assertEqual(response.data['balance'], 50.0)

    def test_stats_count_inactive_products(self):
        product = TestDataFactory.create_product(stock_quantity=0)
        product.is_active = False
        product.save()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['total_products'], 1)
        self.assertEqual(response.data['out_of_stock_products'], 1)
        response = self.client.get('/api/v1/dashboard/daily-stats/')
        self.assertEqual(response.data['product_count'], 1)
        self.assertEqual(response.data['stock_alerts'], 1)

    def test_stats_refresh_after_changes(self):
        self.assertEqual(self.client.get('/api/v1/dashboard/stats/').data['total_income'], 0.0)
        TestDataFactory.create_cash_transaction(amount=Decimal('25.00'))
        self.assertEqual(self.client.get('/api/v1/dashboard/stats/').data['total_income'], 25.0)

    def test_stats_refresh_after_stock_alert_changes(self):
        product = TestDataFactory.create_product(stock_quantity=1, minimum_stock=2)
        self.assertEqual(self.client.get('/api/v1/dashboard/stats/').data['open_stock_alerts'], 0)

        alert = sync_stock_alert(product)
        self.assertEqual(self.client.get('/api/v1/dashboard/stats/').data['open_stock_alerts'], 1)

        alert.resolve()
        self.assertEqual(self.client.get('/api/v1/dashboard/stats/').data['open_stock_alerts'], 0)

    def test_recent_activities(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_sale(product)
        expense = TestDataFactory.create_cash_transaction(amount=Decimal('12.00'),
                                                          type=CashTransaction.TYPE_EXPENSE)
        CashTransaction.objects.filter(pk=expense.pk).update(created_at=timezone.now() + timedelta(minutes=1))

        response = self.client.get('/api/v1/dashboard/recent-activities/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['type'], 'cash_expense')
        self.assertEqual(response.data[0]['amount'], -12.0)
        self.assertEqual(response.data[1]['type'], 'sale')

    def test_recent_activities_are_capped(self):
        for _ in range(7):
            TestDataFactory.create_cash_transaction()
        response = self.client.get('/api/v1/dashboard/recent-activities/')
        self.assertEqual(len(response.data), 5)

    def test_requires_dashboard_permission(self):
        self.client.authenticate_user(TestDataFactory.create_user(pages=['sales']))
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ReportPdfTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(pages=['dashboard'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        product = TestDataFactory.create_product(name='Sugar & Salt')
        TestDataFactory.create_sale(product)
        TestDataFactory.create_purchase(product, TestDataFactory.create_supplier())
        TestDataFactory.create_cash_transaction()

    def test_every_report_type(self):
        for report_type in ('sales', 'purchases', 'inventory', 'cash'):
            response = self.client.get(f'/api/v1/pdf/report/{report_type}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK, report_type)
            self.assertEqual(response['Content-Type'], 'application/pdf')
            self.assertTrue(response.content.startswith(b'%PDF'))

    def test_report_period(self):
        response = self.client.get('/api/v1/pdf/report/sales/', {
            'start_date': '2020-01-01', 'end_date': '2020-01-31',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unknown_report_type(self):
        response = self.client.get('/api/v1/pdf/report/payroll/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ExportAliasTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['products', 'inventory'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_product()

    def test_aliases_keep_page_permissions(self):
        self.assertEqual(self.client.get('/api/v1/export/products/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/export/inventory/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/export/sales/').status_code, status.HTTP_403_FORBIDDEN)

    def test_excel_attachment(self):
        response = self.client.get('/api/v1/export/products/')
        self.assertIn('attachment; filename="products_', response['Content-Disposition'])
        self.assertTrue(response['Content-Disposition'].endswith('.xlsx"'))
