from decimal import Decimal
from rest_framework import serializers
from .models import OilSafe, OlivePurchase, OilSale


class OlivePurchaseSerializer(serializers.ModelSerializer):
    safe_name = serializers.CharField(source='safe.name', read_only=True)
    is_pending_oil = serializers.BooleanField(read_only=True)

    class Meta:
        model = OlivePurchase
        fields = ['id', 'safe', 'safe_name', 'purchase_date', 'farmer_name', 'farmer_phone', 'olive_weight',
                  'price_per_kg', 'total_cost', 'oil_produced', 'yield_percentage', 'is_base_purchase',
                  'is_pending_oil', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields


class OlivePurchaseWriteSerializer(serializers.Serializer):
    """Input for creating or updating a purchase; the safe is only set at creation"""
    safe = serializers.IntegerField(required=False)
    purchase_date = serializers.DateTimeField(required=False)
    farmer_name = serializers.CharField(max_length=100)
    farmer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    olive_weight = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    price_per_kg = serializers.DecimalField(max_digits=8, decimal_places=3, min_value=Decimal('0.001'))
    oil_produced = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'),
                                            required=False, allow_null=True)
    is_base_purchase = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_farmer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Supplier name is required')
        return value

    def validate_farmer_phone(self, value):
        return (value or '').strip() or None

    def validate_notes(self, value):
        return (value or '').strip() or None


class PurchaseMoveSerializer(serializers.Serializer):
    new_safe = serializers.IntegerField()


class OilSaleSerializer(serializers.ModelSerializer):
    safe_name = serializers.CharField(source='safe.name', read_only=True)
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    price_per_kg = serializers.DecimalField(max_digits=8, decimal_places=3, min_value=Decimal('0.001'))

    class Meta:
        model = OilSale
        fields = ['id', 'safe', 'safe_name', 'sale_date', 'buyer_name', 'quantity', 'price_per_kg',
                  'total_revenue', 'notes', 'created_at']
        read_only_fields = ['total_revenue', 'created_at']

    def validate_buyer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Buyer name is required')
        return value


class OilSafeSerializer(serializers.ModelSerializer):
    """Safe with derived capacity figures; history counts come from queryset annotations"""
    capacity = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    available_capacity = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    utilization_percentage = serializers.DecimalField(max_digits=6, decimal_places=2, read_only=True)
    purchase_count = serializers.IntegerField(read_only=True, required=False)
    sale_count = serializers.IntegerField(read_only=True, required=False)
    pending_oil_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = OilSafe
        fields = ['id', 'name', 'capacity', 'current_stock', 'available_capacity', 'utilization_percentage',
                  'description', 'is_active', 'purchase_count', 'sale_count', 'pending_oil_count',
                  'created_at', 'updated_at']
        read_only_fields = ['current_stock', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Safe name is required')
        queryset = OilSafe.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A safe with this name already exists')
        return value

    def validate_capacity(self, value):
        if self.instance and value < self.instance.current_stock:
            raise serializers.ValidationError(
                f"Capacity cannot be lower than the current stock ({self.instance.current_stock} kg)"
            )
        return value

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if self.context.get('include_history'):
            data['purchases'] = OlivePurchaseSerializer(instance.purchases.all(), many=True).data
            data['sales'] = OilSaleSerializer(instance.sales.all(), many=True).data
        return data
