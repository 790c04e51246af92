from decimal import Decimal

from rest_framework import serializers

from retailpos.catalog.models import Product
from retailpos.catalog.serializers import ProductMiniSerializer
from retailpos.parties.models import Supplier
from retailpos.parties.serializers import SupplierMiniSerializer
from .models import Purchase, PAYMENT_METHOD_CHOICES

MONEY = {'max_digits': 12, 'decimal_places': 2, 'min_value': Decimal('0.00')}


class PurchaseSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    supplier = SupplierMiniSerializer(read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', write_only=True
    )
    supplier_id = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.all(), source='supplier', write_only=True
    )
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Purchase
        fields = [
            'id', 'purchase_number', 'product', 'product_id', 'products', 'purchase_type',
            'supplier', 'supplier_id', 'quantity', 'unit_cost', 'total_cost', 'shipping_cost',
            'tax', 'final_cost', 'payment_method', 'status', 'order_date', 'expected_delivery_date',
            'received_date', 'notes', 'created_by', 'created_by_name', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'purchase_number', 'products', 'purchase_type', 'total_cost', 'final_cost',
            'received_date', 'created_by', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'quantity': {'min_value': 1},
            'unit_cost': {'min_value': Decimal('0.00')},
            'shipping_cost': {'min_value': Decimal('0.00'), 'required': False},
            'tax': {'min_value': Decimal('0.00'), 'required': False},
        }

    def get_created_by_name(self, obj):
        if obj.created_by:
            return obj.created_by.name or obj.created_by.email
        return None

    def validate(self, attrs):
        if self.instance is not None and self.instance.purchase_type == Purchase.TYPE_BULK:
            line_fields = {'product', 'quantity', 'unit_cost', 'shipping_cost', 'tax'} & set(attrs)
            if line_fields:
                raise serializers.ValidationError(
                    f"Lines of a bulk purchase cannot be edited: {', '.join(sorted(line_fields))}"
                )
        if self.instance is not None and self.instance.is_received:
            locked = {'product', 'supplier', 'quantity', 'unit_cost', 'shipping_cost', 'tax', 'status'}
            changed = [
                field for field in locked & set(attrs)
                if attrs[field] != getattr(self.instance, field)
            ]
            if changed:
                raise serializers.ValidationError('A received purchase can only have its notes and dates edited')
        order_date = attrs.get('order_date', getattr(self.instance, 'order_date', None))
        expected = attrs.get('expected_delivery_date', getattr(self.instance, 'expected_delivery_date', None))
        if order_date and expected and expected < order_date:
            raise serializers.ValidationError({'expected_delivery_date': 'Delivery cannot be expected before the order date'})
        return attrs


class BulkPurchaseLineSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    supplier_id = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(**MONEY)
    shipping_cost = serializers.DecimalField(required=False, default=Decimal('0.00'), **MONEY)
    tax = serializers.DecimalField(required=False, default=Decimal('0.00'), **MONEY)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES)
    order_date = serializers.DateField()
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BulkPurchaseSerializer(serializers.Serializer):
    purchases = BulkPurchaseLineSerializer(many=True, allow_empty=False)
