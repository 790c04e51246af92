"""
Test suite for the cash register module
Tests: transactions, filters, daily and monthly balance, reports, exports and receipts
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from retailpos.cash.documents import receipt_number
from retailpos.cash.models import CashTransaction
from retailpos.core.models import AuditLog
from retailpos.core.test_utils import TestDataFactory, AuthenticatedAPIClient

EXPENSE = CashTransaction.TYPE_EXPENSE


class CashTransactionTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['cash'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_records_user(self):
        response = self.client.post('/api/v1/cash-transactions/', {
            'type': 'income', 'amount': '250.00', 'description': 'Morning takings', 'payment_method': 'cash',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.user.id)
        self.assertEqual(response.data['user_name'], self.user.name)
        self.assertTrue(AuditLog.objects.filter(model_name='CashTransaction', action='create').exists())

    def test_negative_amount_rejected(self):
        response = self.client.post('/api/v1/cash-transactions/', {
            'type': 'expense', 'amount': '-5.00', 'description': 'Refund',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_type_rejected(self):
        response = self.client.post('/api/v1/cash-transactions/', {
            'type': 'transfer', 'amount': '5.00', 'description': 'Move',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_and_delete(self):
        cash_transaction = TestDataFactory.create_cash_transaction()
        response = self.client.patch(f'/api/v1/cash-transactions/{cash_transaction.id}/',
                                     {'amount': '80.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        cash_transaction.refresh_from_db()
        self.assertEqual(cash_transaction.amount, Decimal('80.00'))

        response = self.client.delete(f'/api/v1/cash-transactions/{cash_transaction.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CashTransaction.objects.exists())

    def test_filters(self):
        TestDataFactory.create_cash_transaction(description='Rent', type=EXPENSE,
                                                transaction_date=date(2024, 3, 5))
        TestDataFactory.create_cash_transaction(description='Sales', transaction_date=date(2024, 3, 20))
        TestDataFactory.create_cash_transaction(description='Sales', transaction_date=date(2024, 4, 2))

        response = self.client.get('/api/v1/cash-transactions/', {'type': 'expense'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/cash-transactions/', {'month': '2024-03'})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/cash-transactions/', {'date': '2024-04-02'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/cash-transactions/', {'search': 'rent'})
        self.assertEqual(response.data['count'], 1)

    def test_newest_first(self):
        TestDataFactory.create_cash_transaction(description='Old', transaction_date=date(2024, 1, 1))
        TestDataFactory.create_cash_transaction(description='New', transaction_date=date(2024, 2, 1))
        response = self.client.get('/api/v1/cash-transactions/')
        self.assertEqual(response.data['results'][0]['description'], 'New')


class CashBalanceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['cash'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_monthly_balance_against_previous_month(self):
        TestDataFactory.create_cash_transaction(amount=Decimal('100.00'), transaction_date=date(2024, 2, 10))
        TestDataFactory.create_cash_transaction(amount=Decimal('150.00'), transaction_date=date(2024, 3, 10))
        TestDataFactory.create_cash_transaction(amount=Decimal('50.00'), type=EXPENSE,
                                                transaction_date=date(2024, 3, 12))

        response = self.client.get('/api/v1/cash-transactions/balance/', {'month': '2024-03'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['view_mode'], 'monthly')
        self.assertEqual(response.data['selected_month'], '2024-03')
        self.assertEqual(response.data['comparison_month'], '2024-02')
        self.assertEqual(response.data['total_income'], 150.0)
        self.assertEqual(response.data['total_expenses'], 50.0)
        self.assertEqual(response.data['current_balance'], 100.0)
        self.assertEqual(response.data['changes']['income_percentage'], 50.0)
        self.assertEqual(response.data['changes']['expenses_percentage'], 0)
        self.assertEqual(response.data['changes']['balance_percentage'], 0.0)

    def test_daily_balance(self):
        TestDataFactory.create_cash_transaction(amount=Decimal('40.00'), transaction_date=date(2024, 5, 1))
        TestDataFactory.create_cash_transaction(amount=Decimal('60.00'), transaction_date=date(2024, 5, 2))
        response = self.client.get('/api/v1/cash-transactions/balance/', {'view_mode': 'daily', 'date': '2024-05-02'})
        self.assertEqual(response.data['selected_date'], '2024-05-02')
        self.assertEqual(response.data['comparison_date'], '2024-05-01')
        self.assertEqual(response.data['total_income'], 60.0)
        self.assertEqual(response.data['changes']['income_percentage'], 50.0)

    def test_negative_previous_balance_uses_absolute_value(self):
        TestDataFactory.create_cash_transaction(amount=Decimal('100.00'), type=EXPENSE,
                                                transaction_date=date(2024, 5, 1))
        TestDataFactory.create_cash_transaction(amount=Decimal('50.00'), type=EXPENSE,
                                                transaction_date=date(2024, 5, 2))
        response = self.client.get('/api/v1/cash-transactions/balance/', {'view_mode': 'daily', 'date': '2024-05-02'})
        self.assertEqual(response.data['current_balance'], -50.0)
        self.assertEqual(response.data['changes']['balance_percentage'], 50.0)


class CashReportTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(pages=['cash'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_reports(self):
        TestDataFactory.create_cash_transaction(amount=Decimal('300.00'), transaction_date=date(2024, 1, 15))
        TestDataFactory.create_cash_transaction(amount=Decimal('120.00'), type=EXPENSE,
                                                transaction_date=date(2024, 2, 3))
        TestDataFactory.create_cash_transaction(amount=Decimal('999.00'), transaction_date=date(2024, 6, 1))
        response = self.client.get('/api/v1/cash-transactions/reports/', {
            'start_date': '2024-01-01', 'end_date': '2024-02-29',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_income'], 300.0)
        self.assertEqual(summary['total_expenses'], 120.0)
        self.assertEqual(summary['net_amount'], 180.0)
        self.assertEqual(summary['transaction_count'], 2)
        self.assertEqual([row['month'] for row in response.data['monthly_breakdown']], ['2024-01', '2024-02'])
        self.assertEqual(len(response.data['transactions']), 2)

    def test_export(self):
        TestDataFactory.create_cash_transaction(type=EXPENSE)
        response = self.client.get('/api/v1/cash-transactions/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('spreadsheetml', response['Content-Type'])
        response = self.client.get('/api/v1/export/cash-transactions/', {'format': 'pdf'})
        self.assertEqual(response['Content-Type'], 'application/pdf')

    def test_receipt_pdf(self):
        cash_transaction = TestDataFactory.create_cash_transaction(transaction_date=date(2024, 8, 9))
        self.assertEqual(receipt_number(cash_transaction), f'REC-20240809-{cash_transaction.pk:05d}')
        response = self.client.get(f'/api/v1/pdf/receipt/{cash_transaction.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
