from django.urls import path
from retailpos.cash.views import cash_transaction_export
from retailpos.catalog.views import product_export
from retailpos.inventory.views import inventory_export
from retailpos.purchasing.views import purchase_export
from retailpos.sales.views import sale_export
from . import views

urlpatterns = [
    path('dashboard/daily-stats/', views.dashboard_daily_stats, name='dashboard-daily-stats'),
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
    path('dashboard/recent-activities/', views.dashboard_recent_activities, name='dashboard-recent-activities'),
    path('pdf/report/<str:report_type>/', views.report_pdf, name='report-pdf'),
    # Export aliases
    path('export/products/', product_export, name='export-products'),
    path('export/sales/', sale_export, name='export-sales'),
    path('export/purchases/', purchase_export, name='export-purchases'),
    path('export/inventory/', inventory_export, name='export-inventory'),
    path('export/cash-transactions/', cash_transaction_export, name='export-cash-transactions'),
]
