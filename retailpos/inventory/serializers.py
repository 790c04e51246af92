from django.utils import timezone
from rest_framework import serializers

from retailpos.catalog.models import Product
from retailpos.catalog.serializers import ProductMiniSerializer
from .models import InventoryMovement, StockAlert
from .services import alert_status


class InventoryMovementSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', write_only=True
    )
    product_name = serializers.CharField(source='product.name', read_only=True)
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'product', 'product_id', 'product_name', 'movement_type', 'quantity',
            'previous_stock', 'new_stock', 'reference', 'reference_type', 'reason',
            'movement_date', 'notes', 'user', 'user_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['previous_stock', 'new_stock', 'user', 'created_at', 'updated_at']

    def get_user_name(self, obj):
        if obj.user:
            return obj.user.name or obj.user.email
        return None

    def validate_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError('Quantity must be at least 1')
        return value


class InventoryMovementUpdateSerializer(serializers.ModelSerializer):
    """Only the descriptive fields of a journal row can change"""

    class Meta:
        model = InventoryMovement
        fields = ['notes', 'reason']


class StockAdjustmentSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source='product')
    quantity = serializers.IntegerField()
    reason = serializers.CharField(max_length=255)
    movement_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError('Quantity cannot be zero')
        return value

    def validate_movement_date(self, value):
        return value or timezone.localdate()


class StockAlertSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', write_only=True
    )

    class Meta:
        model = StockAlert
        fields = [
            'id', 'product', 'product_id', 'alert_type', 'current_stock', 'threshold_stock',
            'priority', 'is_resolved', 'resolved_at', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = ['resolved_at', 'created_at', 'updated_at']

    def update(self, instance, validated_data):
        resolving = validated_data.get('is_resolved') and not instance.is_resolved
        if 'is_resolved' in validated_data and not validated_data['is_resolved']:
            instance.resolved_at = None
        instance = super().update(instance, validated_data)
        if resolving:
            instance.resolve()
        return instance


class ProductStockSerializer(serializers.ModelSerializer):
    """Product row of the stock alert listing"""
    category_name = serializers.CharField(source='category.name', read_only=True)
    status = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'barcode', 'sku', 'category', 'category_name', 'stock_quantity',
            'minimum_stock', 'price', 'status'
        ]

    def get_status(self, obj):
        return alert_status(obj)
