from decimal import Decimal

from rest_framework import serializers

from retailpos.catalog.models import Product
from retailpos.catalog.serializers import ProductMiniSerializer
from retailpos.parties.models import Customer
from retailpos.parties.serializers import CustomerMiniSerializer
from .models import Sale, PAYMENT_METHOD_CHOICES

MONEY = {'max_digits': 12, 'decimal_places': 2, 'min_value': Decimal('0.00')}


class SaleSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    customer = CustomerMiniSerializer(read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', write_only=True
    )
    customer_id = serializers.PrimaryKeyRelatedField(
        queryset=Customer.objects.all(), source='customer', write_only=True,
        required=False, allow_null=True
    )
    unit_price = serializers.DecimalField(required=False, **MONEY)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id', 'invoice_number', 'customer', 'customer_id', 'product', 'product_id', 'products',
            'sale_type', 'quantity', 'unit_price', 'total_amount', 'discount', 'tax', 'final_amount',
            'customer_name', 'customer_email', 'customer_phone', 'payment_method', 'status',
            'sale_date', 'notes', 'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'invoice_number', 'products', 'sale_type', 'total_amount', 'final_amount',
            'created_by', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'quantity': {'min_value': 1},
            'discount': {'min_value': Decimal('0.00'), 'required': False},
            'tax': {'min_value': Decimal('0.00'), 'required': False},
            'customer_name': {'required': False, 'allow_blank': True},
        }

    def get_created_by_name(self, obj):
        if obj.created_by:
            return obj.created_by.name or obj.created_by.email
        return None

    def validate(self, attrs):
        if self.instance is not None and self.instance.sale_type == Sale.TYPE_BULK:
            line_fields = {'product', 'quantity', 'unit_price', 'discount', 'tax'} & set(attrs)
            if line_fields:
                raise serializers.ValidationError(
                    f"Lines of a bulk sale cannot be edited: {', '.join(sorted(line_fields))}"
                )
        return attrs


class BulkSaleLineSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(**MONEY)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES)
    sale_date = serializers.DateField()
    total_amount = serializers.DecimalField(**MONEY)
    discount = serializers.DecimalField(required=False, default=Decimal('0.00'), **MONEY)
    tax = serializers.DecimalField(required=False, default=Decimal('0.00'), **MONEY)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BulkSaleSerializer(serializers.Serializer):
    sales = BulkSaleLineSerializer(many=True, allow_empty=False)
