from django.urls import path
from . import views

urlpatterns = [
    # Inventory
    path('inventory/', views.inventory_overview, name='inventory-overview'),
    path('inventory/movements/', views.inventory_movement_list, name='inventory-movement-list'),
    path('inventory/reports/', views.inventory_reports, name='inventory-reports'),
    path('inventory/adjustment/', views.inventory_adjustment, name='inventory-adjustment'),
    path('inventory/export/', views.inventory_export, name='inventory-export'),
    path('inventory/<int:pk>/', views.inventory_movement_detail, name='inventory-movement-detail'),
    # Stock alerts
    path('stock-alerts/', views.stock_alert_list, name='stock-alert-list'),
    path('stock-alerts/active/', views.stock_alert_active, name='stock-alert-active'),
    path('stock-alerts/check/', views.stock_alert_check, name='stock-alert-check'),
    path('stock-alerts/records/', views.stock_alert_record_list_create, name='stock-alert-record-list-create'),
    path('stock-alerts/records/<int:pk>/', views.stock_alert_record_detail, name='stock-alert-record-detail'),
    path('stock-alerts/<int:product_id>/resolve/', views.stock_alert_resolve, name='stock-alert-resolve'),
]
