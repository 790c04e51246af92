import logging
from collections import defaultdict
from decimal import Decimal

from django.db.models import Q, Count, Sum, DecimalField
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.core.exports import PDF_CONTENT_TYPE, export_response, file_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import (
    create_audit_log, paginated_response, apply_ordering, parse_date, report_period
)
from retailpos.inventory.services import BusinessRuleError, StockError
from .documents import build_invoice_pdf
from .models import Sale
from .serializers import SaleSerializer, BulkSaleSerializer
from .services import create_sale, update_sale, delete_sale, create_bulk_sale, sale_lines

logger = logging.getLogger(__name__)

SALE_SORT_FIELDS = {'invoice_number', 'sale_date', 'final_amount', 'quantity', 'customer_name', 'status', 'created_at'}


def filter_sales(queryset, params):
    """Apply the list filters shared by the list and export endpoints"""
    search = params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(invoice_number__icontains=search) |
            Q(customer_name__icontains=search) |
            Q(customer_email__icontains=search) |
            Q(product__name__icontains=search)
        )

    sale_status = params.get('status', None)
    if sale_status:
        queryset = queryset.filter(status=sale_status)

    customer_id = params.get('customer_id', None)
    if customer_id:
        queryset = queryset.filter(customer_id=customer_id)

    payment_method = params.get('payment_method', None)
    if payment_method:
        queryset = queryset.filter(payment_method=payment_method)

    start_date = parse_date(params.get('start_date'))
    end_date = parse_date(params.get('end_date'))
    if start_date:
        queryset = queryset.filter(sale_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(sale_date__lte=end_date)
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_list_create(request):
    """List all sales or record a new sale"""
    if request.method == 'GET':
        queryset = filter_sales(
            Sale.objects.select_related('product', 'customer', 'created_by'), request.query_params
        )
        queryset = apply_ordering(queryset, request, SALE_SORT_FIELDS, '-sale_date')
        return paginated_response(request, queryset, SaleSerializer)
    else:
        serializer = SaleSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            sale = create_sale(serializer.validated_data, user=request.user, request=request)
        except (StockError, BusinessRuleError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_detail(request, pk):
    """Retrieve, update or delete a sale"""
    sale = get_object_or_404(Sale.objects.select_related('product', 'customer', 'created_by'), pk=pk)

    if request.method == 'GET':
        return Response(SaleSerializer(sale).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SaleSerializer(sale, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        old_quantity = sale.quantity
        try:
            sale = update_sale(sale, serializer.validated_data, user=request.user)
        except (StockError, BusinessRuleError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='update', model_name='Sale',
                         object_id=sale.id, object_name=sale.invoice_number,
                         object_reference=sale.invoice_number,
                         changes={'quantity': [old_quantity, sale.quantity], 'status': sale.status})
        return Response(SaleSerializer(sale).data)
    else:  # DELETE
        sale_id, invoice_number = sale.id, sale.invoice_number
        try:
            delete_sale(sale, user=request.user)
        except (StockError, BusinessRuleError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Sale',
                         object_id=sale_id, object_name=invoice_number, object_reference=invoice_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_bulk_create(request):
    """Record one sale with several product lines"""
    serializer = BulkSaleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        sale = create_bulk_sale(serializer.validated_data['sales'], user=request.user, request=request)
    except (StockError, BusinessRuleError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)


def top_products(sales, limit=5):
    """Best selling products by revenue, counting every line of bulk sales"""
    stats = defaultdict(lambda: {'sale_count': 0, 'total_quantity': 0, 'total_revenue': Decimal('0.00')})
    names = {}
    for sale in sales.select_related('product'):
        if sale.sale_type == Sale.TYPE_BULK and sale.products:
            lines = [
                (int(line['product_id']), line.get('product_name', ''), int(line['quantity']),
                 Decimal(str(line.get('final_amount', line.get('total_amount', 0)))))
                for line in sale.products
            ]
        else:
            lines = [(sale.product_id, sale.product.name, sale.quantity, sale.final_amount)]
        for product_id, name, quantity, revenue in lines:
            entry = stats[product_id]
            entry['sale_count'] += 1
            entry['total_quantity'] += quantity
            entry['total_revenue'] += revenue
            names.setdefault(product_id, name)

    ranked = sorted(stats.items(), key=lambda item: item[1]['total_revenue'], reverse=True)[:limit]
    return [
        {
            'product_id': product_id,
            'product_name': names[product_id],
            'sale_count': entry['sale_count'],
            'total_quantity': entry['total_quantity'],
            'total_revenue': float(entry['total_revenue']),
        }
        for product_id, entry in ranked
    ]


def sale_report_data(start_date, end_date):
    sales = Sale.objects.filter(sale_date__gte=start_date, sale_date__lte=end_date)

    totals = sales.aggregate(
        total_sales=Count('id'),
        total_revenue=Sum('final_amount', output_field=DecimalField()),
        total_discounts=Sum('discount', output_field=DecimalField()),
        total_taxes=Sum('tax', output_field=DecimalField()),
        completed_sales=Count('id', filter=Q(status=Sale.STATUS_COMPLETED)),
        pending_sales=Count('id', filter=Q(status=Sale.STATUS_PENDING)),
    )

    monthly = sales.annotate(month=TruncMonth('sale_date')).values('month').annotate(
        count=Count('id'),
        total=Sum('final_amount', output_field=DecimalField()),
    ).order_by('month')

    return {
        'period': {'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
        'total_sales': totals['total_sales'],
        'total_revenue': float(totals['total_revenue'] or 0),
        'total_discounts': float(totals['total_discounts'] or 0),
        'total_taxes': float(totals['total_taxes'] or 0),
        'completed_sales': totals['completed_sales'],
        'pending_sales': totals['pending_sales'],
        'top_products': top_products(sales.exclude(status=Sale.STATUS_CANCELLED)),
        'monthly_totals': [
            {'month': row['month'].strftime('%Y-%m'), 'count': row['count'], 'total': float(row['total'] or 0)}
            for row in monthly
        ],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_reports(request):
    """Sales totals, top products and monthly totals for a period"""
    start_date, end_date = report_period(request)
    return Response(sale_report_data(start_date, end_date))


SALE_EXPORT_HEADERS = [
    'Invoice', 'Date', 'Customer', 'Product(s)', 'Quantity', 'Unit Price',
    'Total', 'Discount', 'Tax', 'Final Amount', 'Payment', 'Status',
]


def sale_export_rows(queryset):
    rows = []
    for sale in queryset:
        products = ', '.join(f"{line['product_name']} x{line['quantity']}" for line in sale_lines(sale))
        rows.append([
            sale.invoice_number, sale.sale_date, sale.customer_name, products, sale.quantity,
            sale.unit_price, sale.total_amount, sale.discount, sale.tax, sale.final_amount,
            sale.get_payment_method_display(), sale.get_status_display(),
        ])
    return rows


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_export(request):
    """Export sales to Excel or PDF"""
    queryset = filter_sales(
        Sale.objects.select_related('product', 'customer'), request.query_params
    ).order_by('-sale_date', '-id')
    rows = sale_export_rows(queryset)
    total = sum((sale.final_amount for sale in queryset), Decimal('0.00'))
    subtitle = []
    start_date = request.query_params.get('start_date')
    end_date = request.query_params.get('end_date')
    if start_date or end_date:
        subtitle.append(f"Period: {start_date or '...'} to {end_date or '...'}")
    return export_response(
        request.query_params.get('format', 'excel'), 'sales', 'Sales', SALE_EXPORT_HEADERS, rows,
        subtitle_lines=subtitle, summary=[('Sales', len(rows)), ('Total revenue', total)], wide=True
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('sales')])
def sale_invoice_pdf(request, pk):
    """Printable invoice for a sale"""
    sale = get_object_or_404(Sale.objects.select_related('product', 'customer'), pk=pk)
    content = build_invoice_pdf(sale)
    logger.info(f"Invoice PDF generated for {sale.invoice_number}")
    return file_response(content, f"invoice_{sale.invoice_number}.pdf", PDF_CONTENT_TYPE)
