import logging
from decimal import Decimal

from django.db.models import Q, F, Count, Sum, DecimalField, ExpressionWrapper, Case, When, Value, IntegerField
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.catalog.models import Category, Product
from retailpos.core.exports import export_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import create_audit_log, paginated_response, parse_date
from .models import InventoryMovement, StockAlert
from .serializers import (
    InventoryMovementSerializer, InventoryMovementUpdateSerializer, StockAdjustmentSerializer,
    StockAlertSerializer, ProductStockSerializer
)
from .services import (
    StockError, STATUS_CRITICAL, STATUS_LOW, STATUS_NORMAL, alert_status,
    change_stock, record_movement, resolve_product_alerts, check_all_stock_alerts
)

logger = logging.getLogger(__name__)

ACTIVE_ALERTS_LIMIT = 10
RECENT_MOVEMENTS_LIMIT = 10

STOCK_VALUE = ExpressionWrapper(F('price') * F('stock_quantity'), output_field=DecimalField())


def category_overview():
    """Per category stock totals, categories without products are skipped"""
    categories = Category.objects.annotate(
        total_items=Sum('products__stock_quantity'),
        total_value=Sum(
            ExpressionWrapper(F('products__price') * F('products__stock_quantity'), output_field=DecimalField())
        ),
        low_stock=Count('products', filter=Q(products__stock_quantity__lte=F('products__minimum_stock'))),
        product_count=Count('products'),
    ).filter(product_count__gt=0).order_by('name')

    rows = [
        {
            'category': category.name,
            'totalItems': category.total_items or 0,
            'totalValue': float(category.total_value or 0),
            'lowStock': category.low_stock,
        }
        for category in categories
    ]
    summary = {
        'totalValue': round(sum(row['totalValue'] for row in rows), 2),
        'totalItems': sum(row['totalItems'] for row in rows),
        'totalLowStock': sum(row['lowStock'] for row in rows),
    }
    return rows, summary


def filter_movements(queryset, params):
    product_id = params.get('product_id', None)
    if product_id:
        queryset = queryset.filter(product_id=product_id)

    movement_type = params.get('movement_type', None)
    if movement_type:
        queryset = queryset.filter(movement_type=movement_type)

    reference_type = params.get('reference_type', None)
    if reference_type:
        queryset = queryset.filter(reference_type=reference_type)

    start_date = parse_date(params.get('start_date'))
    end_date = parse_date(params.get('end_date'))
    if start_date:
        queryset = queryset.filter(movement_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(movement_date__lte=end_date)
    return queryset


# Inventory movements
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_overview(request):
    """Stock overview per category, or record a manual movement"""
    if request.method == 'GET':
        rows, summary = category_overview()
        return Response({'categories': rows, 'summary': summary})
    else:
        serializer = InventoryMovementSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        product = data['product']
        try:
            movement = record_movement(
                product, data['movement_type'], data['quantity'],
                reference=data.get('reference'),
                reference_type=data.get('reference_type') or 'manual',
                reason=data.get('reason'),
                movement_date=data.get('movement_date'),
                notes=data.get('notes'),
                user=request.user,
            )
        except StockError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Manual {movement.movement_type} of {movement.quantity} for {product.name} by {request.user}")
        create_audit_log(request=request, action='create', model_name='InventoryMovement',
                         object_id=movement.id, object_name=product.name, object_reference=movement.reference,
                         changes={'movement_type': movement.movement_type, 'quantity': movement.quantity,
                                  'previous_stock': movement.previous_stock, 'new_stock': movement.new_stock})
        return Response(InventoryMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_movement_detail(request, pk):
    """Retrieve a journal row, edit its notes and reason, or delete it"""
    movement = get_object_or_404(InventoryMovement.objects.select_related('product', 'user'), pk=pk)

    if request.method == 'GET':
        return Response(InventoryMovementSerializer(movement).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = InventoryMovementUpdateSerializer(movement, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(InventoryMovementSerializer(movement).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        # Stock is left as is, only the journal row goes away
        movement_id, product_name = movement.id, movement.product.name
        movement.delete()
        create_audit_log(request=request, action='delete', model_name='InventoryMovement',
                         object_id=movement_id, object_name=product_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_movement_list(request):
    """List journaled stock movements"""
    queryset = filter_movements(
        InventoryMovement.objects.select_related('product', 'user'), request.query_params
    ).order_by('-movement_date', '-id')
    return paginated_response(request, queryset, InventoryMovementSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_reports(request):
    """Low and out of stock products, category summary and latest movements"""
    products = Product.objects.filter(is_active=True).select_related('category')
    low_stock = products.filter(stock_quantity__gt=0, stock_quantity__lte=F('minimum_stock')).order_by('stock_quantity')
    out_of_stock = products.filter(stock_quantity__lte=0).order_by('name')
    rows, summary = category_overview()
    recent = InventoryMovement.objects.select_related('product', 'user').order_by('-created_at')[:RECENT_MOVEMENTS_LIMIT]

    return Response({
        'low_stock_products': ProductStockSerializer(low_stock, many=True).data,
        'out_of_stock_products': ProductStockSerializer(out_of_stock, many=True).data,
        'category_summary': rows,
        'summary': summary,
        'recent_movements': InventoryMovementSerializer(recent, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_adjustment(request):
    """Adjust a product's stock by a signed quantity"""
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    product = data['product']
    quantity = data['quantity']
    movement_type = (
        InventoryMovement.MOVEMENT_ADJUSTMENT_IN if quantity > 0 else InventoryMovement.MOVEMENT_ADJUSTMENT_OUT
    )
    try:
        movement = change_stock(
            product, quantity, movement_type=movement_type, reference='ADJUSTMENT',
            reference_type='adjustment', reason=data['reason'],
            movement_date=data.get('movement_date'), notes=data.get('notes'), user=request.user,
        )
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Stock of {product.name} adjusted by {quantity} ({data['reason']}) by {request.user}")
    create_audit_log(request=request, action='stock_adjust', model_name='Product',
                     object_id=product.id, object_name=product.name, object_reference='ADJUSTMENT',
                     changes={'quantity': quantity, 'previous_stock': movement.previous_stock,
                              'new_stock': movement.new_stock, 'reason': data['reason']})
    return Response(InventoryMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


INVENTORY_EXPORT_HEADERS = ['Product', 'Category', 'Barcode', 'Stock', 'Minimum', 'Unit Price', 'Stock Value', 'Status']


def inventory_export_rows(products):
    return [
        [
            p.name, p.category.name if p.category else '', p.barcode or '', p.stock_quantity,
            p.minimum_stock, p.price, p.stock_value, alert_status(p),
        ]
        for p in products
    ]


def inventory_export_queryset(params):
    queryset = Product.objects.filter(is_active=True).select_related('category')
    category_id = params.get('category_id', None)
    if category_id:
        queryset = queryset.filter(category_id=category_id)
    return queryset.order_by('category__name', 'name')


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('inventory')])
def inventory_export(request):
    """Export the stock sheet to Excel or PDF"""
    products = inventory_export_queryset(request.query_params)
    total_value = products.aggregate(total=Sum(STOCK_VALUE))['total'] or Decimal('0.00')
    return export_response(
        request.query_params.get('format', 'excel'), 'inventory', 'Inventory',
        INVENTORY_EXPORT_HEADERS, inventory_export_rows(products),
        summary=[('Products', products.count()), ('Stock value', total_value)],
        wide=True,
    )


# Stock alerts
def stock_status_queryset():
    """Every product, active or not, annotated with an alert severity used for ordering"""
    return Product.objects.select_related('category').annotate(
        severity=Case(
            When(stock_quantity__lte=0, then=Value(0)),
            When(stock_quantity__lte=F('minimum_stock'), then=Value(1)),
            default=Value(2),
            output_field=IntegerField(),
        )
    )


def stock_alert_statistics():
    counts = stock_status_queryset().aggregate(
        critical=Count('id', filter=Q(severity=0)),
        low=Count('id', filter=Q(severity=1)),
        normal=Count('id', filter=Q(severity=2)),
        total=Count('id'),
    )
    return counts


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_list(request):
    """Products at or under their minimum stock, lowest stock first"""
    queryset = stock_status_queryset()

    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(barcode__icontains=search) | Q(sku__icontains=search)
        )

    category_id = request.query_params.get('category_id', None)
    if category_id:
        queryset = queryset.filter(category_id=category_id)

    status_filter = request.query_params.get('status', None)
    if status_filter == STATUS_CRITICAL:
        queryset = queryset.filter(severity=0)
    elif status_filter == STATUS_LOW:
        queryset = queryset.filter(severity=1)
    elif status_filter == STATUS_NORMAL:
        queryset = queryset.filter(severity=2)
    else:
        queryset = queryset.filter(severity__lt=2)

    queryset = queryset.order_by('stock_quantity', 'name')
    return paginated_response(request, queryset, ProductStockSerializer,
                              extra={'statistics': stock_alert_statistics()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_active(request):
    products = stock_status_queryset().filter(severity__lt=2).order_by('severity', 'stock_quantity', 'name')
    return Response(ProductStockSerializer(products[:ACTIVE_ALERTS_LIMIT], many=True).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_resolve(request, product_id):
    """Acknowledge a product's stock level and close its open alerts"""
    product = get_object_or_404(Product, pk=product_id)
    previous_minimum = product.minimum_stock
    resolved = resolve_product_alerts(product, notes=request.data.get('notes'))

    create_audit_log(request=request, action='update', model_name='Product',
                     object_id=product.id, object_name=product.name,
                     changes={'minimum_stock': {'old': previous_minimum, 'new': product.minimum_stock},
                              'resolved_alerts': resolved})
    return Response({
        'product': ProductStockSerializer(product).data,
        'resolved_alerts': resolved,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_check(request):
    """Synchronise alert rows with current stock for every product"""
    alerts = check_all_stock_alerts()
    summary = {
        'critical': sum(1 for alert in alerts if alert.alert_type == StockAlert.ALERT_OUT_OF_STOCK),
        'low': sum(1 for alert in alerts if alert.alert_type == StockAlert.ALERT_LOW_STOCK),
        'total': len(alerts),
    }
    return Response({'alerts': StockAlertSerializer(alerts, many=True).data, 'summary': summary})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_record_list_create(request):
    if request.method == 'GET':
        queryset = StockAlert.objects.select_related('product')
        is_resolved = request.query_params.get('is_resolved', None)
        if is_resolved is not None and is_resolved != '':
            queryset = queryset.filter(is_resolved=is_resolved.lower() in ('true', '1'))
        alert_type = request.query_params.get('alert_type', None)
        if alert_type:
            queryset = queryset.filter(alert_type=alert_type)
        return paginated_response(request, queryset.order_by('-created_at'), StockAlertSerializer)
    else:
        serializer = StockAlertSerializer(data=request.data)
        if serializer.is_valid():
            alert = serializer.save()
            return Response(StockAlertSerializer(alert).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('stock')])
def stock_alert_record_detail(request, pk):
    alert = get_object_or_404(StockAlert.objects.select_related('product'), pk=pk)

    if request.method == 'GET':
        return Response(StockAlertSerializer(alert).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StockAlertSerializer(alert, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        alert.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
