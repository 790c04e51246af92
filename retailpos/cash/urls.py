from django.urls import path
from .views import (
    cash_transaction_list_create, cash_transaction_detail, cash_balance,
    cash_reports, cash_transaction_export, cash_receipt_pdf
)

urlpatterns = [
    path('cash-transactions/', cash_transaction_list_create, name='cash-transaction-list-create'),
    path('cash-transactions/balance/', cash_balance, name='cash-balance'),
    path('cash-transactions/reports/', cash_reports, name='cash-reports'),
    path('cash-transactions/export/', cash_transaction_export, name='cash-transaction-export'),
    path('cash-transactions/<int:pk>/', cash_transaction_detail, name='cash-transaction-detail'),
    path('pdf/receipt/<int:pk>/', cash_receipt_pdf, name='cash-receipt-pdf'),
]
