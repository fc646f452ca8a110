from decimal import Decimal
from django.utils import timezone
from rest_framework import serializers
from .models import CollectorGroup, DailyCollection, CollectorPayment
from .units import apply_collection_totals


class DailyCollectionSerializer(serializers.ModelSerializer):
    """Counts are normalized (5 galba -> 1 chakra) and totals recomputed on save"""
    group_name = serializers.CharField(source='group.name', read_only=True)
    price_per_chakra = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal('0'),
                                                required=False, allow_null=True)

    class Meta:
        model = DailyCollection
        fields = ['id', 'group', 'group_name', 'collection_date', 'location', 'client_name',
                  'chakra_count', 'galba_count', 'nchira_chakra_count', 'nchira_galba_count',
                  'total_chakra', 'price_per_chakra', 'total_amount', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['total_chakra', 'total_amount', 'created_at', 'updated_at']
        extra_kwargs = {
            'chakra_count': {'required': True},
            'galba_count': {'required': True},
        }

    def validate_location(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Location is required')
        return value

    def validate_client_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Client name is required')
        return value

    def validate_notes(self, value):
        if not value:
            return None
        return value.strip() or None

    def validate_price_per_chakra(self, value):
        return value if value is not None else Decimal('0.000')

    def create(self, validated_data):
        collection = DailyCollection(**validated_data)
        apply_collection_totals(collection)
        collection.save()
        return collection

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        apply_collection_totals(instance)
        instance.save()
        return instance


class CollectorGroupSerializer(serializers.ModelSerializer):
    recent_collections = serializers.SerializerMethodField()

    class Meta:
        model = CollectorGroup
        fields = ['id', 'name', 'is_active', 'recent_collections', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_recent_collections(self, obj):
        if not self.context.get('include_collections', True):
            return None
        collections = obj.collections.all()[:10]
        return DailyCollectionSerializer(collections, many=True).data

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Group name cannot be empty')
        queryset = CollectorGroup.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A group with this name already exists')
        return value


class CollectorPaymentSerializer(serializers.ModelSerializer):
    group_name = serializers.CharField(source='group.name', read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    payment_date = serializers.DateTimeField(required=False, allow_null=True)

    class Meta:
        model = CollectorPayment
        fields = ['id', 'group', 'group_name', 'amount', 'notes', 'payment_date', 'created_at']
        read_only_fields = ['created_at']

    def create(self, validated_data):
        validated_data['payment_date'] = validated_data.get('payment_date') or timezone.now()
        return super().create(validated_data)
