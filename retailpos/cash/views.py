import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Q, Sum, Count, DecimalField
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.core.exports import PDF_CONTENT_TYPE, export_response, file_response
from retailpos.core.permissions import page_permission
from retailpos.core.utils import (
    create_audit_log, paginated_response, apply_ordering, parse_date, parse_month,
    month_bounds, previous_month, percentage_change, report_period
)
from .documents import build_receipt_pdf, receipt_number
from .models import CashTransaction
from .serializers import CashTransactionSerializer

logger = logging.getLogger(__name__)

CASH_SORT_FIELDS = {'transaction_date', 'amount', 'type', 'description', 'created_at'}


def filter_transactions(queryset, params):
    """Apply the list filters shared by the list and export endpoints"""
    search = params.get('search', None)
    if search:
        queryset = queryset.filter(
            Q(description__icontains=search) |
            Q(reference__icontains=search) |
            Q(payment_method__icontains=search) |
            Q(notes__icontains=search)
        )

    transaction_type = params.get('type', None)
    if transaction_type:
        queryset = queryset.filter(type=transaction_type)

    day = parse_date(params.get('date'))
    if day:
        queryset = queryset.filter(transaction_date=day)

    month = parse_month(params.get('month'))
    if month:
        month_start, month_end = month_bounds(month)
        queryset = queryset.filter(transaction_date__gte=month_start, transaction_date__lte=month_end)

    start_date = parse_date(params.get('start_date'))
    end_date = parse_date(params.get('end_date'))
    if start_date:
        queryset = queryset.filter(transaction_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(transaction_date__lte=end_date)
    return queryset


def cash_totals(start_date, end_date):
    """(income, expenses) between two dates inclusive"""
    totals = CashTransaction.objects.filter(
        transaction_date__gte=start_date, transaction_date__lte=end_date
    ).aggregate(
        income=Sum('amount', filter=Q(type=CashTransaction.TYPE_INCOME), output_field=DecimalField()),
        expenses=Sum('amount', filter=Q(type=CashTransaction.TYPE_EXPENSE), output_field=DecimalField()),
    )
    return totals['income'] or Decimal('0.00'), totals['expenses'] or Decimal('0.00')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_transaction_list_create(request):
    """List all cash transactions or record a new one"""
    if request.method == 'GET':
        queryset = filter_transactions(CashTransaction.objects.select_related('user'), request.query_params)
        queryset = apply_ordering(queryset, request, CASH_SORT_FIELDS, '-transaction_date')
        return paginated_response(request, queryset, CashTransactionSerializer)
    else:
        serializer = CashTransactionSerializer(data=request.data)
        if serializer.is_valid():
            cash_transaction = serializer.save(user=request.user)
            logger.info(f"Cash {cash_transaction.type} of {cash_transaction.amount} recorded by {request.user}")
            create_audit_log(request=request, action='create', model_name='CashTransaction',
                             object_id=cash_transaction.id, object_name=cash_transaction.description,
                             object_reference=cash_transaction.reference,
                             changes={'type': cash_transaction.type, 'amount': str(cash_transaction.amount)})
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_transaction_detail(request, pk):
    """Retrieve, update or delete a cash transaction"""
    cash_transaction = get_object_or_404(CashTransaction.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        return Response(CashTransactionSerializer(cash_transaction).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CashTransactionSerializer(cash_transaction, data=request.data,
                                               partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='CashTransaction',
                             object_id=cash_transaction.id, object_name=cash_transaction.description,
                             object_reference=cash_transaction.reference)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        transaction_id, description = cash_transaction.id, cash_transaction.description
        cash_transaction.delete()
        create_audit_log(request=request, action='delete', model_name='CashTransaction',
                         object_id=transaction_id, object_name=description)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_balance(request):
    """
    Income, expenses and balance for a day or a month, with the percentage
    change against the previous day or month.
    """
    view_mode = request.query_params.get('view_mode', 'monthly')
    today = timezone.localdate()

    if view_mode == 'daily':
        target = parse_date(request.query_params.get('date'), today)
        previous = target - timedelta(days=1)
        income, expenses = cash_totals(target, target)
        prev_income, prev_expenses = cash_totals(previous, previous)
        period = {
            'selected_date': target.isoformat(),
            'comparison_date': previous.isoformat(),
        }
    else:
        view_mode = 'monthly'
        target = parse_month(request.query_params.get('month'), today.replace(day=1))
        month_start, month_end = month_bounds(target)
        prev_start, prev_end = month_bounds(previous_month(target))
        income, expenses = cash_totals(month_start, month_end)
        prev_income, prev_expenses = cash_totals(prev_start, prev_end)
        period = {
            'selected_month': month_start.strftime('%Y-%m'),
            'comparison_month': prev_start.strftime('%Y-%m'),
        }

    balance = income - expenses
    prev_balance = prev_income - prev_expenses
    data = {
        'total_income': float(income),
        'total_expenses': float(expenses),
        'current_balance': float(balance),
        'changes': {
            'income_percentage': percentage_change(income, prev_income),
            'expenses_percentage': percentage_change(expenses, prev_expenses),
            'balance_percentage': percentage_change(balance, prev_balance, use_abs=True),
        },
        'view_mode': view_mode,
    }
    data.update(period)
    return Response(data)


def cash_report_data(start_date, end_date):
    transactions = CashTransaction.objects.filter(
        transaction_date__gte=start_date, transaction_date__lte=end_date
    )
    income, expenses = cash_totals(start_date, end_date)

    monthly = transactions.annotate(month=TruncMonth('transaction_date')).values('month').annotate(
        income=Sum('amount', filter=Q(type=CashTransaction.TYPE_INCOME), output_field=DecimalField()),
        expenses=Sum('amount', filter=Q(type=CashTransaction.TYPE_EXPENSE), output_field=DecimalField()),
    ).order_by('month')

    payment_methods = transactions.values('payment_method').annotate(
        total=Sum('amount', output_field=DecimalField()),
        count=Count('id'),
    ).order_by('-total')

    return {
        'period': {'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
        'transactions': CashTransactionSerializer(
            transactions.select_related('user').order_by('-transaction_date', '-id'), many=True
        ).data,
        'summary': {
            'total_income': float(income),
            'total_expenses': float(expenses),
            'net_amount': float(income - expenses),
            'transaction_count': transactions.count(),
        },
        'monthly_breakdown': [
            {
                'month': row['month'].strftime('%Y-%m'),
                'income': float(row['income'] or 0),
                'expenses': float(row['expenses'] or 0),
            }
            for row in monthly
        ],
        'payment_methods': [
            {'payment_method': row['payment_method'] or 'unspecified', 'total': float(row['total'] or 0),
             'count': row['count']}
            for row in payment_methods
        ],
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_reports(request):
    """Cash summary with monthly and payment method breakdowns"""
    start_date, end_date = report_period(request)
    return Response(cash_report_data(start_date, end_date))


CASH_EXPORT_HEADERS = ['Date', 'Type', 'Description', 'Reference', 'Payment Method', 'Amount', 'Recorded By']


def cash_export_rows(queryset):
    return [
        [
            t.transaction_date, t.get_type_display(), t.description, t.reference or '',
            t.payment_method or '', t.signed_amount, (t.user.name or t.user.email) if t.user else '',
        ]
        for t in queryset
    ]


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_transaction_export(request):
    """Export cash transactions to Excel or PDF"""
    queryset = filter_transactions(
        CashTransaction.objects.select_related('user'), request.query_params
    ).order_by('-transaction_date', '-id')
    rows = cash_export_rows(queryset)
    totals = queryset.aggregate(
        income=Sum('amount', filter=Q(type=CashTransaction.TYPE_INCOME), output_field=DecimalField()),
        expenses=Sum('amount', filter=Q(type=CashTransaction.TYPE_EXPENSE), output_field=DecimalField()),
    )
    income = totals['income'] or Decimal('0.00')
    expenses = totals['expenses'] or Decimal('0.00')
    return export_response(
        request.query_params.get('format', 'excel'), 'cash_transactions', 'Cash Transactions',
        CASH_EXPORT_HEADERS, rows,
        summary=[('Total income', income), ('Total expenses', expenses), ('Net amount', income - expenses)],
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('cash')])
def cash_receipt_pdf(request, pk):
    """Printable receipt for a cash transaction"""
    cash_transaction = get_object_or_404(CashTransaction.objects.select_related('user'), pk=pk)
    content = build_receipt_pdf(cash_transaction)
    return file_response(content, f"receipt_{receipt_number(cash_transaction)}.pdf", PDF_CONTENT_TYPE)
