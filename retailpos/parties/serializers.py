from rest_framework import serializers
from .models import Customer, Supplier

NULLABLE_CUSTOMER_FIELDS = ['email', 'phone', 'barcode', 'address', 'loyalty_card_number', 'notes']


class CustomerSerializer(serializers.ModelSerializer):
    sales_count = serializers.SerializerMethodField()
    sales_total = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'email', 'phone', 'barcode', 'address', 'is_loyalty',
            'loyalty_card_number', 'loyalty_start_date', 'loyalty_points', 'notes',
            'sales_count', 'sales_total', 'created_at', 'updated_at'
        ]
        read_only_fields = ['loyalty_points', 'created_at', 'updated_at']
        extra_kwargs = {
            'email': {'allow_null': True, 'required': False, 'allow_blank': True},
            'barcode': {'allow_null': True, 'required': False, 'allow_blank': True},
            'loyalty_card_number': {'allow_null': True, 'required': False, 'allow_blank': True},
        }

    def get_sales_count(self, obj):
        """Use the list annotation when present"""
        if hasattr(obj, 'annotated_sales_count'):
            return obj.annotated_sales_count
        return obj.total_purchases

    def get_sales_total(self, obj):
        if hasattr(obj, 'annotated_sales_total'):
            return float(obj.annotated_sales_total or 0)
        return float(obj.total_spent)

    def to_internal_value(self, data):
        # Empty strings from forms are stored as NULL so unique columns stay usable
        if hasattr(data, 'copy'):
            data = data.copy()
        for field in NULLABLE_CUSTOMER_FIELDS:
            if field in data and data[field] == '':
                data[field] = None
        return super().to_internal_value(data)

    def create(self, validated_data):
        customer = Customer(**validated_data)
        if not customer.barcode:
            customer.barcode = Customer.generate_barcode()
        if customer.is_loyalty:
            customer.enroll_loyalty()
            customer.loyalty_points = 0
        customer.save()
        return customer

    def update(self, instance, validated_data):
        instance = super().update(instance, validated_data)
        if instance.is_loyalty and (not instance.loyalty_card_number or not instance.loyalty_start_date):
            instance.enroll_loyalty()
            instance.save()
        return instance


class CustomerMiniSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'email', 'phone', 'is_loyalty', 'loyalty_card_number', 'loyalty_points']


class LoyaltyPointsSerializer(serializers.Serializer):
    points = serializers.IntegerField(min_value=1)


class SupplierSerializer(serializers.ModelSerializer):
    orders_count = serializers.SerializerMethodField()
    total_spent = serializers.SerializerMethodField()

    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'contact_person', 'email', 'phone', 'address', 'city', 'country',
            'postal_code', 'notes', 'is_active', 'orders_count', 'total_spent', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_orders_count(self, obj):
        if hasattr(obj, 'annotated_orders_count'):
            return obj.annotated_orders_count
        return obj.orders_count

    def get_total_spent(self, obj):
        if hasattr(obj, 'annotated_total_spent'):
            return float(obj.annotated_total_spent or 0)
        return float(obj.total_spent)


class SupplierMiniSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'contact_person', 'phone', 'email', 'is_active']
