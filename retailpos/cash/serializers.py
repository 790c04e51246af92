from decimal import Decimal

from rest_framework import serializers
from .models import CashTransaction


class CashTransactionSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = CashTransaction
        fields = [
            'id', 'type', 'amount', 'description', 'reference', 'payment_method',
            'transaction_date', 'notes', 'user', 'user_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'created_at', 'updated_at']
        extra_kwargs = {
            'amount': {'min_value': Decimal('0.00')},
        }

    def get_user_name(self, obj):
        if obj.user:
            return obj.user.name or obj.user.email
        return None
