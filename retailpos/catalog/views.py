import logging

from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.core.cache_signals import suspend_cache_signals
from retailpos.core.cache_utils import invalidate_dashboard_cache
from retailpos.core.exports import export_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import create_audit_log, paginated_response, apply_ordering
from retailpos.inventory.models import InventoryMovement
from retailpos.inventory.services import change_stock, set_stock
from .filters import ProductFilter
from .models import Category, Product, STOCK_STATUS_CHOICES
from .serializers import (
    CategorySerializer, ProductSerializer, ProductPhotoSerializer, BulkProductUpdateSerializer
)

logger = logging.getLogger(__name__)

PRODUCT_SORT_FIELDS = {'name', 'price', 'stock_quantity', 'minimum_stock', 'created_at', 'updated_at'}
PRODUCT_SEARCH_LIMIT = 10
STOCK_STATUS_LABELS = dict(STOCK_STATUS_CHOICES)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('categories')])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        queryset = Category.objects.annotate(annotated_products_count=Count('products'))

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))

        is_active = request.query_params.get('is_active', None)
        if is_active is not None and is_active != '':
            queryset = queryset.filter(is_active=is_active.lower() in ('true', '1'))

        queryset = queryset.order_by('name')
        if request.query_params.get('all') in ('true', '1'):
            return Response(CategorySerializer(queryset, many=True).data)
        return paginated_response(request, queryset, CategorySerializer)
    else:
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            category = serializer.save()
            create_audit_log(request=request, action='create', model_name='Category',
                             object_id=category.id, object_name=category.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('categories')])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        serializer = CategorySerializer(category)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Category',
                             object_id=category.id, object_name=category.name)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if category.products.exists():
            return Response(
                {'error': 'Cannot delete a category that still has products'},
                status=status.HTTP_400_BAD_REQUEST
            )
        category_id, category_name = category.id, category.name
        category.delete()
        create_audit_log(request=request, action='delete', model_name='Category',
                         object_id=category_id, object_name=category_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.select_related('category', 'supplier')

        # Use django-filter for filtering
        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs

        queryset = apply_ordering(queryset, request, PRODUCT_SORT_FIELDS, 'name')
        return paginated_response(request, queryset, ProductSerializer)
    else:
        serializer = ProductSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            initial_stock = serializer.validated_data.pop('stock_quantity', 0)
            with transaction.atomic():
                product = serializer.save(stock_quantity=0)
                # Opening stock is journaled like any other stock entry
                change_stock(product, initial_stock, movement_type=InventoryMovement.MOVEMENT_IN,
                             reference='INITIAL-STOCK', reference_type='manual',
                             reason='Opening stock', user=request.user)
            create_audit_log(request=request, action='create', model_name='Product',
                             object_id=product.id, object_name=product.name,
                             object_reference=product.barcode or product.sku)
            return Response(ProductSerializer(product, context={'request': request}).data,
                            status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('category', 'supplier'), pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product, context={'request': request})
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        old_stock = product.stock_quantity
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH',
                                       context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        new_stock = serializer.validated_data.pop('stock_quantity', old_stock)
        with transaction.atomic():
            product = serializer.save()
            if new_stock != old_stock:
                # Stock edits from the product form are journaled as adjustments
                set_stock(product, new_stock, reference='PRODUCT-EDIT', reference_type='manual',
                          reason='Product form edit', user=request.user)
        create_audit_log(request=request, action='update', model_name='Product',
                         object_id=product.id, object_name=product.name,
                         changes={'stock_quantity': [old_stock, product.stock_quantity]} if new_stock != old_stock else None)
        return Response(ProductSerializer(product, context={'request': request}).data)
    else:  # DELETE
        if product.sales.exists() or product.purchases.exists():
            return Response(
                {'error': 'Cannot delete a product with recorded sales or purchases'},
                status=status.HTTP_400_BAD_REQUEST
            )
        product_id, product_name = product.id, product.name
        if product.photo:
            product.photo.delete(save=False)
        product.delete()
        create_audit_log(request=request, action='delete', model_name='Product',
                         object_id=product_id, object_name=product_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('products')])
@parser_classes([MultiPartParser, FormParser])
def product_upload_photo(request):
    """Upload or replace a product photo"""
    serializer = ProductPhotoSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product = serializer.validated_data['product']
    if product.photo:
        product.photo.delete(save=False)
    product.photo = serializer.validated_data['photo']
    product.save(update_fields=['photo', 'updated_at'])
    logger.info(f"Photo uploaded for product {product.id} ({product.name})")
    return Response({
        'message': 'Photo uploaded successfully',
        'photo_url': product.photo_url(request),
        'product': ProductSerializer(product, context={'request': request}).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_search(request):
    """Quick search for the point of sale: active products by name, barcode or SKU"""
    query = (request.query_params.get('query') or request.query_params.get('q') or '').strip()
    if len(query) < 2:
        return Response([])

    products = Product.objects.select_related('category', 'supplier').filter(is_active=True).filter(
        Q(name__icontains=query) | Q(barcode__icontains=query) | Q(sku__icontains=query)
    ).order_by('name')[:PRODUCT_SEARCH_LIMIT]
    return Response(ProductSerializer(products, many=True, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_by_barcode(request, barcode):
    """Active product matching a scanned barcode"""
    product = Product.objects.select_related('category', 'supplier').filter(
        barcode=barcode, is_active=True
    ).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(ProductSerializer(product, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_bulk_update(request):
    """Update stock, price or active flag of several products at once"""
    serializer = BulkProductUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    items = serializer.validated_data['products']
    updated = []
    with suspend_cache_signals():
        with transaction.atomic():
            for item in items:
                product = Product.objects.select_for_update().get(pk=item['id'])
                fields = []
                if 'price' in item:
                    product.price = item['price']
                    fields.append('price')
                if 'is_active' in item:
                    product.is_active = item['is_active']
                    fields.append('is_active')
                if fields:
                    product.save(update_fields=fields + ['updated_at'])
                if 'stock_quantity' in item:
                    set_stock(product, item['stock_quantity'], reference='BULK-UPDATE',
                              reference_type='bulk_update', reason='Bulk update', user=request.user)
                updated.append(product.id)
    invalidate_dashboard_cache()

    logger.info(f"Bulk update of {len(updated)} products by {request.user}")
    create_audit_log(request=request, action='update', model_name='Product',
                     object_id=','.join(str(pk) for pk in updated)[:100],
                     object_name=f"Bulk update ({len(updated)} products)",
                     changes={'products': request.data.get('products')})
    products = Product.objects.select_related('category', 'supplier').filter(id__in=updated)
    return Response({
        'message': f'{len(updated)} products updated',
        'updated_count': len(updated),
        'products': ProductSerializer(products, many=True, context={'request': request}).data,
    })


def product_export_rows(queryset):
    return [
        [
            p.id, p.name, p.category.name if p.category else '', p.supplier.name if p.supplier else '',
            p.barcode or '', p.sku or '', p.price, p.loyalty_price, p.cost_price,
            p.stock_quantity, p.minimum_stock, STOCK_STATUS_LABELS[p.stock_status], 'Yes' if p.is_active else 'No',
        ]
        for p in queryset
    ]


PRODUCT_EXPORT_HEADERS = [
    'ID', 'Name', 'Category', 'Supplier', 'Barcode', 'SKU', 'Price', 'Loyalty Price',
    'Cost Price', 'Stock', 'Minimum Stock', 'Stock Status', 'Active',
]


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('products')])
def product_export(request):
    """Export the (filtered) product list to Excel or PDF"""
    queryset = ProductFilter(
        request.query_params, queryset=Product.objects.select_related('category', 'supplier')
    ).qs.order_by('name')
    rows = product_export_rows(queryset)
    return export_response(
        request.query_params.get('format', 'excel'), 'products', 'Products', PRODUCT_EXPORT_HEADERS, rows,
        summary=[('Total products', len(rows))], wide=True
    )
