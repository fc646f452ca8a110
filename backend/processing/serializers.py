from decimal import Decimal
from rest_framework import serializers
from .models import ProcessingSession, SessionBox, PaymentTransaction


class SessionBoxSerializer(serializers.ModelSerializer):
    class Meta:
        model = SessionBox
        fields = ['id', 'box_id', 'box_weight', 'box_type']


class PaymentTransactionSerializer(serializers.ModelSerializer):
    session_number = serializers.CharField(source='session.session_number', read_only=True)

    class Meta:
        model = PaymentTransaction
        fields = ['id', 'session', 'session_number', 'amount', 'payment_method', 'notes', 'payment_date', 'created_at']
        read_only_fields = ['created_at']


class ProcessingSessionSerializer(serializers.ModelSerializer):
    """
    Session with its farmer name and extraction rate. Box snapshots and
    payments are rendered when the context sets include_boxes / include_payments.
    """
    farmer_name = serializers.CharField(source='farmer.name', read_only=True)
    farmer_phone = serializers.CharField(source='farmer.phone', read_only=True, allow_null=True)
    extraction_rate = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    session_boxes = SessionBoxSerializer(many=True, read_only=True)
    payment_transactions = PaymentTransactionSerializer(many=True, read_only=True)

    class Meta:
        model = ProcessingSession
        fields = ['id', 'session_number', 'farmer', 'farmer_name', 'farmer_phone', 'oil_weight', 'oil_unit',
                  'total_box_weight', 'box_count', 'total_price', 'price_per_kg', 'amount_paid',
                  'remaining_amount', 'processing_status', 'payment_status', 'processing_date',
                  'payment_date', 'notes', 'extraction_rate', 'session_boxes', 'payment_transactions',
                  'created_at', 'updated_at']
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context.get('include_boxes'):
            data.pop('session_boxes', None)
        if not self.context.get('include_payments'):
            data.pop('payment_transactions', None)
        return data


class SessionCreateSerializer(serializers.Serializer):
    farmer = serializers.IntegerField()
    box_ids = serializers.ListField(child=serializers.CharField(max_length=20), min_length=1)
    total_box_weight = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.1'))
    box_count = serializers.IntegerField(min_value=1)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'),
                                           required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate_box_ids(self, value):
        cleaned = [box_id.strip() for box_id in value]
        if len(cleaned) != len(set(cleaned)):
            raise serializers.ValidationError('Duplicate box ids')
        return cleaned


class PaymentStatusField(serializers.ChoiceField):
    """Payment status choice; 'pending' is accepted as a synonym of 'unpaid'"""

    def __init__(self, **kwargs):
        super().__init__(choices=ProcessingSession.PAYMENT_STATUS_CHOICES, **kwargs)

    def to_internal_value(self, data):
        if data == 'pending':
            data = 'unpaid'
        return super().to_internal_value(data)


class SessionUpdateSerializer(serializers.Serializer):
    oil_weight = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False)
    processing_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    processing_status = serializers.ChoiceField(choices=ProcessingSession.PROCESSING_STATUS_CHOICES, required=False)
    payment_status = PaymentStatusField(required=False)


class SessionCompleteSerializer(serializers.Serializer):
    oil_weight = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    processing_date = serializers.DateTimeField()
    payment_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class SessionPaymentSerializer(serializers.Serializer):
    price_per_kg = serializers.DecimalField(max_digits=6, decimal_places=3, min_value=Decimal('0.001'))
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'))
    payment_method = serializers.ChoiceField(choices=PaymentTransaction.PAYMENT_METHOD_CHOICES, default='cash')
    payment_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class BulkPaymentSerializer(SessionPaymentSerializer):
    session_ids = serializers.ListField(child=serializers.IntegerField(), min_length=2)

    def validate_session_ids(self, value):
        if len(value) != len(set(value)):
            raise serializers.ValidationError('Duplicate session ids')
        return value
