from decimal import Decimal
from rest_framework import serializers
from .models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    session_number = serializers.CharField(source='session.session_number', read_only=True, allow_null=True)

    class Meta:
        model = Transaction
        fields = ['id', 'type', 'amount', 'description', 'destination', 'created_by', 'created_by_username',
                  'farmer', 'farmer_name', 'session', 'session_number', 'transaction_date', 'created_at']
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    """Manual ledger entries; farmer payments are only written by the session payment flow"""
    type = serializers.ChoiceField(choices=[('DEBIT', 'Debit'), ('CREDIT', 'Credit')])
    amount = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    description = serializers.CharField(max_length=1000)
    destination = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    transaction_date = serializers.DateTimeField(required=False)

    def validate_description(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Description is required')
        return value

    def create(self, validated_data):
        if validated_data['type'] == 'CREDIT':
            validated_data['amount'] = -validated_data['amount']
        return Transaction.objects.create(**validated_data)
