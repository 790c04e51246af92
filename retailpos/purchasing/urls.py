from django.urls import path
from .views import (
    purchase_list_create, purchase_detail, purchase_receive,
    purchase_bulk_create, purchase_reports, purchase_export
)

urlpatterns = [
    path('purchases/', purchase_list_create, name='purchase-list-create'),
    path('purchases/bulk/', purchase_bulk_create, name='purchase-bulk-create'),
    path('purchases/reports/', purchase_reports, name='purchase-reports'),
    path('purchases/export/', purchase_export, name='purchase-export'),
    path('purchases/<int:pk>/', purchase_detail, name='purchase-detail'),
    path('purchases/<int:pk>/receive/', purchase_receive, name='purchase-receive'),
]
