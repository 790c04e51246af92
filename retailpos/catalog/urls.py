from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail, product_upload_photo,
    product_search, product_by_barcode, product_bulk_update, product_export
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/upload-photo/', product_upload_photo, name='product-upload-photo'),
    path('products/search/', product_search, name='product-search'),
    path('products/barcode/<str:barcode>/', product_by_barcode, name='product-by-barcode'),
    path('products/bulk-update/', product_bulk_update, name='product-bulk-update'),
    path('products/export/', product_export, name='product-export'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
