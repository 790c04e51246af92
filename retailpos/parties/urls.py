from django.urls import path
from .views import (
    customer_list_create, customer_detail, customer_by_barcode,
    customer_toggle_loyalty, customer_add_points, customer_statistics,
    supplier_list_create, supplier_detail, supplier_products,
    supplier_purchases, supplier_toggle_status, supplier_statistics
)

urlpatterns = [
    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/statistics/', customer_statistics, name='customer-statistics'),
    path('customers/barcode/<str:barcode>/', customer_by_barcode, name='customer-by-barcode'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/toggle-loyalty/', customer_toggle_loyalty, name='customer-toggle-loyalty'),
    path('customers/<int:pk>/add-points/', customer_add_points, name='customer-add-points'),

    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/statistics/', supplier_statistics, name='supplier-statistics'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
    path('suppliers/<int:pk>/products/', supplier_products, name='supplier-products'),
    path('suppliers/<int:pk>/purchases/', supplier_purchases, name='supplier-purchases'),
    path('suppliers/<int:pk>/toggle-status/', supplier_toggle_status, name='supplier-toggle-status'),
]
