from django.conf import settings
from rest_framework import serializers

from retailpos.parties.models import Supplier
from retailpos.parties.serializers import SupplierMiniSerializer
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    products_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'color', 'is_active', 'products_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_products_count(self, obj):
        if hasattr(obj, 'annotated_products_count'):
            return obj.annotated_products_count
        return obj.products.count()

    def validate_color(self, value):
        if value and (len(value) != 7 or not value.startswith('#')):
            raise serializers.ValidationError('Color must be a hex value like #3B82F6')
        return value


class CategoryMiniSerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'color']


class ProductSerializer(serializers.ModelSerializer):
    category = CategoryMiniSerializer(read_only=True)
    supplier = SupplierMiniSerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), source='category', write_only=True
    )
    supplier_id = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.all(), source='supplier', write_only=True,
        required=False, allow_null=True
    )
    stock_status = serializers.CharField(read_only=True)
    photo_url = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'loyalty_price', 'cost_price', 'barcode', 'sku',
            'stock_quantity', 'minimum_stock', 'category', 'category_id', 'supplier', 'supplier_id',
            'is_active', 'photo', 'photo_url', 'stock_status', 'created_at', 'updated_at'
        ]
        read_only_fields = ['photo', 'created_at', 'updated_at']
        extra_kwargs = {
            'barcode': {'allow_null': True, 'required': False, 'allow_blank': True},
            'sku': {'allow_null': True, 'required': False, 'allow_blank': True},
        }

    def get_photo_url(self, obj):
        return obj.photo_url(self.context.get('request'))

    def to_internal_value(self, data):
        # Blank barcode/SKU must not collide on the unique index
        if hasattr(data, 'copy'):
            data = data.copy()
        for field in ('barcode', 'sku'):
            if field in data and data[field] == '':
                data[field] = None
        return super().to_internal_value(data)

    def validate(self, attrs):
        price = attrs.get('price', getattr(self.instance, 'price', None))
        loyalty_price = attrs.get('loyalty_price', getattr(self.instance, 'loyalty_price', None))
        if price is not None and loyalty_price is not None and loyalty_price > price:
            raise serializers.ValidationError({'loyalty_price': 'Loyalty price cannot be higher than the price'})
        return attrs


class ProductMiniSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'barcode', 'sku', 'price', 'loyalty_price', 'stock_quantity', 'minimum_stock']


class ProductPhotoSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source='product')
    photo = serializers.ImageField()

    def validate_photo(self, value):
        extension = value.name.rsplit('.', 1)[-1].lower() if '.' in value.name else ''
        if extension not in settings.PRODUCT_PHOTO_EXTENSIONS:
            raise serializers.ValidationError(
                f"Unsupported image type. Allowed: {', '.join(settings.PRODUCT_PHOTO_EXTENSIONS)}"
            )
        if value.size > settings.PRODUCT_PHOTO_MAX_SIZE:
            raise serializers.ValidationError('Image must not exceed 2 MB')
        return value


class BulkProductItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    stock_quantity = serializers.IntegerField(min_value=0, required=False)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    is_active = serializers.BooleanField(required=False)


class BulkProductUpdateSerializer(serializers.Serializer):
    products = BulkProductItemSerializer(many=True, allow_empty=False)

    def validate_products(self, value):
        ids = [item['id'] for item in value]
        existing = set(Product.objects.filter(id__in=ids).values_list('id', flat=True))
        missing = [product_id for product_id in ids if product_id not in existing]
        if missing:
            raise serializers.ValidationError(f"Unknown product ids: {missing}")
        return value
