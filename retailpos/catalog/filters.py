import django_filters
from django.db.models import F, Q

from .models import Product, STOCK_IN, STOCK_LOW, STOCK_OUT


class ProductFilter(django_filters.FilterSet):
    """Product list filters using django-filter"""

    # Searches name, description, barcode and SKU
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category_id = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    supplier_id = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    stock_status = django_filters.CharFilter(method='filter_stock_status', label='Stock status')
    is_active = django_filters.CharFilter(method='filter_is_active', label='Active')

    class Meta:
        model = Product
        fields = ['search', 'category_id', 'supplier_id', 'stock_status', 'is_active']

    def filter_search(self, queryset, name, value):
        search = value.strip() if value else ''
        if not search:
            return queryset
        return queryset.filter(
            Q(name__icontains=search) |
            Q(description__icontains=search) |
            Q(barcode__icontains=search) |
            Q(sku__icontains=search)
        )

    def filter_stock_status(self, queryset, name, value):
        if value == STOCK_OUT:
            return queryset.filter(stock_quantity__lte=0)
        if value == STOCK_LOW:
            return queryset.filter(stock_quantity__gt=0, stock_quantity__lte=F('minimum_stock'))
        if value == STOCK_IN:
            return queryset.filter(stock_quantity__gt=F('minimum_stock'))
        return queryset

    def filter_is_active(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        return queryset.filter(is_active=str(value).lower() in ('true', '1', 'yes'))
