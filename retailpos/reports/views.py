"""
Dashboard and printable report views.

Dashboard figures are cached (see retailpos.core.cache_utils) and dropped
by the cache signals whenever a sale, cash transaction or product changes.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal

from django.db.models import Q, F, Sum, Count, DecimalField, ExpressionWrapper
from django.http import Http404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.cash.models import CashTransaction
from retailpos.cash.views import CASH_EXPORT_HEADERS, cash_export_rows, cash_report_data
from retailpos.catalog.models import Product
from retailpos.core.cache_utils import (
    cached_query, DASHBOARD_STATS_CACHE_TTL, DASHBOARD_DAILY_CACHE_TTL,
    DASHBOARD_STATS_PREFIX, DASHBOARD_DAILY_PREFIX
)
from retailpos.core.exports import pdf_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import percentage_change, report_period
from retailpos.inventory.models import StockAlert
from retailpos.inventory.views import INVENTORY_EXPORT_HEADERS, inventory_export_rows, category_overview
from retailpos.purchasing.models import Purchase
from retailpos.purchasing.views import PURCHASE_EXPORT_HEADERS, purchase_export_rows, purchase_report_data
from retailpos.sales.models import Sale
from retailpos.sales.views import SALE_EXPORT_HEADERS, sale_export_rows, sale_report_data

logger = logging.getLogger('retailpos.reports')

RECENT_ACTIVITY_LIMIT = 5


def _cash_income(day):
    total = CashTransaction.objects.filter(
        type=CashTransaction.TYPE_INCOME, transaction_date=day
    ).aggregate(total=Sum('amount', output_field=DecimalField()))['total']
    return total or Decimal('0.00')


@cached_query(cache_ttl=DASHBOARD_DAILY_CACHE_TTL, key_prefix=DASHBOARD_DAILY_PREFIX)
def daily_stats_data(day_iso):
    today = date.fromisoformat(day_iso)
    yesterday = today - timedelta(days=1)

    income_today = _cash_income(today)
    income_yesterday = _cash_income(yesterday)
    sales_today = Sale.objects.filter(sale_date=today).exclude(status=Sale.STATUS_CANCELLED).count()
    sales_yesterday = Sale.objects.filter(sale_date=yesterday).exclude(status=Sale.STATUS_CANCELLED).count()

    products = Product.objects.all()
    return {
        'date': day_iso,
        'cash_income': {
            'today': float(income_today),
            'yesterday': float(income_yesterday),
            'change_percentage': percentage_change(income_today, income_yesterday),
        },
        'sales_count': {
            'today': sales_today,
            'yesterday': sales_yesterday,
            'change_percentage': percentage_change(sales_today, sales_yesterday),
        },
        'product_count': products.count(),
        'stock_alerts': products.filter(stock_quantity__lte=F('minimum_stock')).count(),
    }


@cached_query(cache_ttl=DASHBOARD_STATS_CACHE_TTL, key_prefix=DASHBOARD_STATS_PREFIX)
def dashboard_stats_data():
    products = Product.objects.aggregate(
        total=Count('id'),
        low_stock=Count('id', filter=Q(stock_quantity__gt=0, stock_quantity__lte=F('minimum_stock'))),
        out_of_stock=Count('id', filter=Q(stock_quantity__lte=0)),
        stock_value=Sum(ExpressionWrapper(F('price') * F('stock_quantity'), output_field=DecimalField())),
    )
    sales = Sale.objects.exclude(status=Sale.STATUS_CANCELLED).aggregate(
        total=Count('id'),
        revenue=Sum('final_amount', output_field=DecimalField()),
    )
    cash = CashTransaction.objects.aggregate(
        income=Sum('amount', filter=Q(type=CashTransaction.TYPE_INCOME), output_field=DecimalField()),
        expenses=Sum('amount', filter=Q(type=CashTransaction.TYPE_EXPENSE), output_field=DecimalField()),
    )
    income = cash['income'] or Decimal('0.00')
    expenses = cash['expenses'] or Decimal('0.00')

    return {
        'total_products': products['total'],
        'total_sales': sales['total'],
        'total_revenue': float(sales['revenue'] or 0),
        'total_income': float(income),
        'total_expenses': float(expenses),
        'balance': float(income - expenses),
        'low_stock_products': products['low_stock'],
        'out_of_stock_products': products['out_of_stock'],
        'stock_value': float(products['stock_value'] or 0),
        'open_stock_alerts': StockAlert.objects.filter(is_resolved=False).count(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('dashboard')])
def dashboard_daily_stats(request):
    """Today's cash income and sales compared with yesterday"""
    return Response(daily_stats_data(timezone.localdate().isoformat()))


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('dashboard')])
def dashboard_stats(request):
    """Overall product, sale and cash figures"""
    return Response(dashboard_stats_data())


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('dashboard')])
def dashboard_recent_activities(request):
    """Latest sales and cash transactions, newest first"""
    activities = []
    for sale in Sale.objects.order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]:
        activities.append({
            'type': 'sale',
            'id': sale.id,
            'title': sale.invoice_number,
            'description': sale.customer_name or '',
            'amount': float(sale.final_amount),
            'status': sale.status,
            'date': sale.sale_date.isoformat(),
            'created_at': sale.created_at,
        })
    for cash_transaction in CashTransaction.objects.order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]:
        activities.append({
            'type': f"cash_{cash_transaction.type}",
            'id': cash_transaction.id,
            'title': cash_transaction.description,
            'description': cash_transaction.reference or '',
            'amount': float(cash_transaction.signed_amount),
            'status': cash_transaction.type,
            'date': cash_transaction.transaction_date.isoformat(),
            'created_at': cash_transaction.created_at,
        })

    activities.sort(key=lambda activity: activity['created_at'], reverse=True)
    return Response(activities[:RECENT_ACTIVITY_LIMIT * 2])


def _period_line(start_date, end_date):
    return f"Period: {start_date.isoformat()} to {end_date.isoformat()}"


def sales_report_pdf(start_date, end_date):
    data = sale_report_data(start_date, end_date)
    sales = Sale.objects.select_related('customer', 'product').filter(
        sale_date__gte=start_date, sale_date__lte=end_date
    ).order_by('-sale_date', '-id')
    summary = [
        ('Sales', data['total_sales']),
        ('Revenue', Decimal(str(data['total_revenue']))),
        ('Discounts', Decimal(str(data['total_discounts']))),
        ('Taxes', Decimal(str(data['total_taxes']))),
        ('Completed', data['completed_sales']),
        ('Pending', data['pending_sales']),
    ]
    return pdf_response('sales_report', 'Sales Report', SALE_EXPORT_HEADERS, sale_export_rows(sales),
                        subtitle_lines=[_period_line(start_date, end_date)], summary=summary, wide=True)


def purchases_report_pdf(start_date, end_date):
    data = purchase_report_data(start_date, end_date)
    purchases = Purchase.objects.select_related('supplier', 'product').filter(
        order_date__gte=start_date, order_date__lte=end_date
    ).order_by('-order_date', '-id')
    summary = [
        ('Purchases', data['total_purchases']),
        ('Total amount', Decimal(str(data['total_amount']))),
        ('Pending', data['pending_purchases']),
        ('Received', data['received_purchases']),
    ]
    return pdf_response('purchases_report', 'Purchases Report', PURCHASE_EXPORT_HEADERS,
                        purchase_export_rows(purchases),
                        subtitle_lines=[_period_line(start_date, end_date)], summary=summary, wide=True)


def inventory_report_pdf(start_date, end_date):
    products = Product.objects.filter(is_active=True).select_related('category').order_by('category__name', 'name')
    _, overview = category_overview()
    summary = [
        ('Items in stock', overview['totalItems']),
        ('Stock value', Decimal(str(overview['totalValue']))),
        ('Low stock products', overview['totalLowStock']),
    ]
    return pdf_response('inventory_report', 'Inventory Report', INVENTORY_EXPORT_HEADERS,
                        inventory_export_rows(products), summary=summary, wide=True)


def cash_report_pdf(start_date, end_date):
    data = cash_report_data(start_date, end_date)
    transactions = CashTransaction.objects.select_related('user').filter(
        transaction_date__gte=start_date, transaction_date__lte=end_date
    ).order_by('-transaction_date', '-id')
    summary = [
        ('Total income', Decimal(str(data['summary']['total_income']))),
        ('Total expenses', Decimal(str(data['summary']['total_expenses']))),
        ('Net amount', Decimal(str(data['summary']['net_amount']))),
    ]
    return pdf_response('cash_report', 'Cash Report', CASH_EXPORT_HEADERS, cash_export_rows(transactions),
                        subtitle_lines=[_period_line(start_date, end_date)], summary=summary)


REPORT_BUILDERS = {
    'sales': sales_report_pdf,
    'purchases': purchases_report_pdf,
    'inventory': inventory_report_pdf,
    'cash': cash_report_pdf,
}


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('dashboard')])
def report_pdf(request, report_type):
    """Printable report for sales, purchases, inventory or cash"""
    builder = REPORT_BUILDERS.get(report_type)
    if builder is None:
        raise Http404(f"Unknown report type: {report_type}")
    start_date, end_date = report_period(request)
    logger.info(f"Generating {report_type} report PDF for {start_date} - {end_date} (user: {request.user})")
    return builder(start_date, end_date)
