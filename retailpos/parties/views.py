import logging

from django.db.models import Q, Count, Sum, DecimalField, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from retailpos.core.permissions import page_permission
from retailpos.core.utils import create_audit_log, paginated_response, apply_ordering
from .models import Customer, Supplier
from .serializers import CustomerSerializer, LoyaltyPointsSerializer, SupplierSerializer

logger = logging.getLogger(__name__)

ZERO = Value(0, output_field=DecimalField(max_digits=12, decimal_places=2))

CUSTOMER_SORT_FIELDS = {'name', 'email', 'loyalty_points', 'created_at'}
SUPPLIER_SORT_FIELDS = {'name', 'contact_person', 'city', 'created_at'}


def _customer_queryset():
    return Customer.objects.annotate(
        annotated_sales_count=Count('sales', distinct=True),
        annotated_sales_total=Coalesce(Sum('sales__final_amount'), ZERO),
    )


def _supplier_queryset():
    return Supplier.objects.annotate(
        annotated_orders_count=Count('purchases', distinct=True),
        annotated_total_spent=Coalesce(Sum('purchases__final_cost'), ZERO),
    )


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = _customer_queryset()

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search) |
                Q(loyalty_card_number__icontains=search)
            )

        loyalty = request.query_params.get('loyalty', None)
        if loyalty in ('true', '1'):
            queryset = queryset.filter(is_loyalty=True)
        elif loyalty in ('false', '0'):
            queryset = queryset.filter(is_loyalty=False)

        queryset = apply_ordering(queryset, request, CUSTOMER_SORT_FIELDS, '-created_at')
        return paginated_response(request, queryset, CustomerSerializer)
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            customer = serializer.save()
            create_audit_log(request=request, action='create', model_name='Customer',
                             object_id=customer.id, object_name=customer.name)
            return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        from retailpos.sales.serializers import SaleSerializer
        data = CustomerSerializer(customer).data
        recent_sales = customer.sales.select_related('product').order_by('-sale_date', '-id')[:10]
        data['recent_sales'] = SaleSerializer(recent_sales, many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            customer = serializer.save()
            create_audit_log(request=request, action='update', model_name='Customer',
                             object_id=customer.id, object_name=customer.name)
            return Response(CustomerSerializer(customer).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if customer.sales.exists():
            return Response(
                {'error': 'Cannot delete a customer with recorded sales'},
                status=status.HTTP_400_BAD_REQUEST
            )
        customer_id, customer_name = customer.id, customer.name
        customer.delete()
        create_audit_log(request=request, action='delete', model_name='Customer',
                         object_id=customer_id, object_name=customer_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_by_barcode(request, barcode):
    """Look a customer up by card barcode or loyalty card number"""
    customer = Customer.objects.filter(Q(barcode=barcode) | Q(loyalty_card_number=barcode)).first()
    if customer is None:
        return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(CustomerSerializer(customer).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_toggle_loyalty(request, pk):
    """Enroll or withdraw a customer from the loyalty programme"""
    customer = get_object_or_404(Customer, pk=pk)
    if customer.is_loyalty:
        customer.is_loyalty = False
    else:
        customer.enroll_loyalty()
    customer.save()
    create_audit_log(request=request, action='update', model_name='Customer',
                     object_id=customer.id, object_name=customer.name,
                     changes={'is_loyalty': customer.is_loyalty})
    return Response(CustomerSerializer(customer).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_add_points(request, pk):
    """Credit loyalty points to a customer"""
    customer = get_object_or_404(Customer, pk=pk)
    serializer = LoyaltyPointsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    points = serializer.validated_data['points']
    customer.add_loyalty_points(points)
    create_audit_log(request=request, action='loyalty_points', model_name='Customer',
                     object_id=customer.id, object_name=customer.name,
                     changes={'points_added': points, 'balance': customer.loyalty_points})
    return Response(CustomerSerializer(customer).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('customers')])
def customer_statistics(request):
    """Customer counts, loyalty split and the five biggest spenders"""
    totals = Customer.objects.aggregate(
        total_customers=Count('id'),
        loyalty_customers=Count('id', filter=Q(is_loyalty=True)),
        total_loyalty_points=Coalesce(Sum('loyalty_points'), 0),
    )
    top_customers = _customer_queryset().filter(
        annotated_sales_count__gt=0
    ).order_by('-annotated_sales_total', 'name')[:5]

    return Response({
        'total_customers': totals['total_customers'],
        'loyalty_customers': totals['loyalty_customers'],
        'non_loyalty_customers': totals['total_customers'] - totals['loyalty_customers'],
        'total_loyalty_points': totals['total_loyalty_points'],
        'top_customers': CustomerSerializer(top_customers, many=True).data,
    })


# Supplier views
def supplier_statistics_data():
    totals = Supplier.objects.aggregate(
        total=Count('id', distinct=True),
        active=Count('id', filter=Q(is_active=True), distinct=True),
    )
    from retailpos.purchasing.models import Purchase
    purchase_totals = Purchase.objects.aggregate(
        total_orders=Count('id'),
        total_spent=Coalesce(Sum('final_cost'), ZERO),
    )
    return {
        'total': totals['total'],
        'active': totals['active'],
        'inactive': totals['total'] - totals['active'],
        'total_orders': purchase_totals['total_orders'],
        'total_spent': float(purchase_totals['total_spent']),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = _supplier_queryset()

        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(contact_person__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )

        supplier_status = request.query_params.get('status', None)
        if supplier_status == 'active':
            queryset = queryset.filter(is_active=True)
        elif supplier_status == 'inactive':
            queryset = queryset.filter(is_active=False)

        queryset = apply_ordering(queryset, request, SUPPLIER_SORT_FIELDS, 'name')
        return paginated_response(request, queryset, SupplierSerializer,
                                  extra={'statistics': supplier_statistics_data()})
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(request=request, action='create', model_name='Supplier',
                             object_id=supplier.id, object_name=supplier.name)
            return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        from retailpos.purchasing.serializers import PurchaseSerializer
        data = SupplierSerializer(supplier).data
        recent = supplier.purchases.select_related('product').order_by('-order_date', '-id')[:10]
        data['recent_purchases'] = PurchaseSerializer(recent, many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(request=request, action='update', model_name='Supplier',
                             object_id=supplier.id, object_name=supplier.name)
            return Response(SupplierSerializer(supplier).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if supplier.purchases.exists():
            return Response(
                {'error': 'Cannot delete a supplier with recorded purchases'},
                status=status.HTTP_400_BAD_REQUEST
            )
        supplier_id, supplier_name = supplier.id, supplier.name
        supplier.delete()
        create_audit_log(request=request, action='delete', model_name='Supplier',
                         object_id=supplier_id, object_name=supplier_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_products(request, pk):
    """Products supplied by a supplier"""
    from retailpos.catalog.serializers import ProductSerializer
    supplier = get_object_or_404(Supplier, pk=pk)
    queryset = supplier.products.select_related('category', 'supplier').order_by('name')
    return paginated_response(request, queryset, ProductSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_purchases(request, pk):
    """Purchase history of a supplier"""
    from retailpos.purchasing.serializers import PurchaseSerializer
    supplier = get_object_or_404(Supplier, pk=pk)
    queryset = supplier.purchases.select_related('product', 'supplier').order_by('-order_date', '-id')
    return paginated_response(request, queryset, PurchaseSerializer)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_toggle_status(request, pk):
    """Activate or deactivate a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)
    supplier.is_active = not supplier.is_active
    supplier.save(update_fields=['is_active', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='Supplier',
                     object_id=supplier.id, object_name=supplier.name,
                     changes={'is_active': supplier.is_active})
    return Response(SupplierSerializer(supplier).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, page_permission('suppliers')])
def supplier_statistics(request):
    """Supplier totals and the five suppliers with the highest spend"""
    data = supplier_statistics_data()
    top_suppliers = _supplier_queryset().filter(
        annotated_orders_count__gt=0
    ).order_by('-annotated_total_spent', 'name')[:5]
    data['top_suppliers'] = SupplierSerializer(top_suppliers, many=True).data
    return Response(data)
