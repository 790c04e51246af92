import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Q, Count, Sum, DecimalField
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.core.exports import export_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import (
    create_audit_log, paginated_response, apply_ordering, parse_date, report_period
)
from retailpos.inventory.services import BusinessRuleError, StockError
from .models import Purchase
from .serializers import PurchaseSerializer, BulkPurchaseSerializer
from .services import create_purchase, create_bulk_purchase, receive_purchase

logger = logging.getLogger(__name__)

PURCHASE_SORT_FIELDS = {'purchase_number', 'order_date', 'final_cost', 'quantity', 'status', 'created_at'}


def filter_purchases(queryset, params):
    """Apply the list filters shared by the list and export endpoints"""
    search = params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(purchase_number__icontains=search) |
            Q(product__name__icontains=search) |
            Q(supplier__name__icontains=search) |
            Q(notes__icontains=search)
        )

    purchase_status = params.get('status', None)
    if purchase_status:
        queryset = queryset.filter(status=purchase_status)

    supplier_id = params.get('supplier_id', None)
    if supplier_id:
        queryset = queryset.filter(supplier_id=supplier_id)

    start_date = parse_date(params.get('start_date'))
    end_date = parse_date(params.get('end_date'))
    if start_date:
        queryset = queryset.filter(order_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(order_date__lte=end_date)
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_list_create(request):
    """List all purchases or create a new purchase"""
    if request.method == 'GET':
        queryset = filter_purchases(
            Purchase.objects.select_related('product', 'supplier', 'created_by'), request.query_params
        )
        queryset = apply_ordering(queryset, request, PURCHASE_SORT_FIELDS, '-order_date')
        return paginated_response(request, queryset, PurchaseSerializer)
    else:
        serializer = PurchaseSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            purchase = create_purchase(serializer.validated_data, user=request.user)
        except (BusinessRuleError, StockError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='create', model_name='Purchase',
                         object_id=purchase.id, object_name=purchase.purchase_number,
                         object_reference=purchase.purchase_number,
                         changes={'final_cost': str(purchase.final_cost)})
        purchase.refresh_from_db()
        return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_detail(request, pk):
    """Retrieve, update or delete a purchase"""
    purchase = get_object_or_404(Purchase.objects.select_related('product', 'supplier', 'created_by'), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseSerializer(purchase).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PurchaseSerializer(purchase, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        receive_now = (
            serializer.validated_data.get('status') == Purchase.STATUS_RECEIVED
            and not purchase.is_received
        )
        if receive_now:
            serializer.validated_data['status'] = purchase.status
        try:
            with transaction.atomic():
                purchase = serializer.save()
                if purchase.purchase_type == Purchase.TYPE_SINGLE:
                    purchase.calculate_totals()
                    purchase.save(update_fields=['total_cost', 'final_cost', 'updated_at'])
                if receive_now:
                    purchase = receive_purchase(purchase, user=request.user, request=request)
        except (BusinessRuleError, StockError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        create_audit_log(request=request, action='update', model_name='Purchase',
                         object_id=purchase.id, object_name=purchase.purchase_number,
                         object_reference=purchase.purchase_number)
        purchase.refresh_from_db()
        return Response(PurchaseSerializer(purchase).data)
    else:  # DELETE
        if purchase.is_received:
            return Response(
                {'error': 'A received purchase cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        purchase_id, number = purchase.id, purchase.purchase_number
        purchase.delete()
        create_audit_log(request=request, action='delete', model_name='Purchase',
                         object_id=purchase_id, object_name=number, object_reference=number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PUT', 'PATCH', 'POST'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_receive(request, pk):
    """Receive a pending purchase and add its quantities to stock"""
    purchase = get_object_or_404(Purchase, pk=pk)
    try:
        purchase = receive_purchase(purchase, user=request.user, request=request)
    except (BusinessRuleError, StockError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    purchase = Purchase.objects.select_related('product', 'supplier', 'created_by').get(pk=purchase.pk)
    return Response(PurchaseSerializer(purchase).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_bulk_create(request):
    """Create one purchase with several product lines"""
    serializer = BulkPurchaseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    purchase = create_bulk_purchase(serializer.validated_data['purchases'], user=request.user)
    create_audit_log(request=request, action='create', model_name='Purchase',
                     object_id=purchase.id, object_name=purchase.purchase_number,
                     object_reference=purchase.purchase_number,
                     changes={'lines': len(purchase.products), 'final_cost': str(purchase.final_cost)})
    return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


def purchase_report_data(start_date, end_date):
    purchases = Purchase.objects.filter(order_date__gte=start_date, order_date__lte=end_date)

    totals = purchases.aggregate(
        total_purchases=Count('id'),
        total_amount=Sum('final_cost', output_field=DecimalField()),
        pending_purchases=Count('id', filter=Q(status=Purchase.STATUS_PENDING)),
        received_purchases=Count('id', filter=Q(status=Purchase.STATUS_RECEIVED)),
    )

    top_suppliers = purchases.values('supplier_id', 'supplier__name').annotate(
        purchase_count=Count('id'),
        total_spent=Sum('final_cost', output_field=DecimalField()),
    ).order_by('-total_spent')[:5]

    monthly = purchases.annotate(month=TruncMonth('order_date')).values('month').annotate(
        count=Count('id'),
        total=Sum('final_cost', output_field=DecimalField()),
    ).order_by('month')

    return {
        'period': {'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
        'total_purchases': totals['total_purchases'],
        'total_amount': float(totals['total_amount'] or Decimal('0.00')),
        'pending_purchases': totals['pending_purchases'],
        'received_purchases': totals['received_purchases'],
        'top_suppliers': [
            {
                'supplier_id': row['supplier_id'],
                'supplier_name': row['supplier__name'],
                'purchase_count': row['purchase_count'],
                'total_spent': float(row['total_spent'] or 0),
            }
            for row in top_suppliers
        ],
        'monthly_totals': [
            {'month': row['month'].strftime('%Y-%m'), 'count': row['count'], 'total': float(row['total'] or 0)}
            for row in monthly
        ],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_reports(request):
    """Purchase totals, top suppliers and monthly totals for a period"""
    start_date, end_date = report_period(request)
    return Response(purchase_report_data(start_date, end_date))


PURCHASE_EXPORT_HEADERS = [
    'Number', 'Order Date', 'Supplier', 'Product(s)', 'Quantity', 'Unit Cost',
    'Total Cost', 'Shipping', 'Tax', 'Final Cost', 'Payment', 'Status', 'Received',
]


def purchase_export_rows(queryset):
    rows = []
    for purchase in queryset:
        if purchase.purchase_type == Purchase.TYPE_BULK and purchase.products:
            products = ', '.join(f"{line['product_name']} x{line['quantity']}" for line in purchase.products)
        else:
            products = purchase.product.name
        rows.append([
            purchase.purchase_number, purchase.order_date, purchase.supplier.name, products,
            purchase.quantity, purchase.unit_cost, purchase.total_cost, purchase.shipping_cost,
            purchase.tax, purchase.final_cost, purchase.get_payment_method_display(),
            purchase.get_status_display(), purchase.received_date or '',
        ])
    return rows


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('purchases')])
def purchase_export(request):
    """Export purchases to Excel or PDF"""
    queryset = filter_purchases(
        Purchase.objects.select_related('product', 'supplier'), request.query_params
    ).order_by('-order_date', '-id')
    rows = purchase_export_rows(queryset)
    total = sum((purchase.final_cost for purchase in queryset), Decimal('0.00'))
    return export_response(
        request.query_params.get('format', 'excel'), 'purchases', 'Purchases', PURCHASE_EXPORT_HEADERS, rows,
        summary=[('Purchases', len(rows)), ('Total amount', total)], wide=True
    )
