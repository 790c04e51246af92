from django.urls import path
from .views import (
    sale_list_create, sale_detail, sale_bulk_create,
    sale_reports, sale_export, sale_invoice_pdf
)

urlpatterns = [
    path('sales/', sale_list_create, name='sale-list-create'),
    path('sales/bulk/', sale_bulk_create, name='sale-bulk-create'),
    path('sales/reports/', sale_reports, name='sale-reports'),
    path('sales/export/', sale_export, name='sale-export'),
    path('sales/<int:pk>/', sale_detail, name='sale-detail'),
    path('pdf/invoice/<int:pk>/', sale_invoice_pdf, name='sale-invoice-pdf'),
]
