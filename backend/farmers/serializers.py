import re
from decimal import Decimal
from django.conf import settings
from rest_framework import serializers
from .models import Farmer, Box

PHONE_PATTERN = re.compile(r'^[0-9+\-\s()]{6,20}$')


class BoxSerializer(serializers.ModelSerializer):
    current_farmer_name = serializers.CharField(source='current_farmer.name', read_only=True, allow_null=True)

    class Meta:
        model = Box
        fields = ['id', 'type', 'status', 'current_farmer', 'current_farmer_name', 'current_weight',
                  'assigned_at', 'is_selected', 'created_at', 'updated_at']
        read_only_fields = fields


class FarmerSerializer(serializers.ModelSerializer):
    """
    Farmer with balances. Boxes and sessions are only rendered when the
    serializer context asks for them (include_boxes / include_sessions).
    """
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)
    suggested_price_per_kg = serializers.DecimalField(max_digits=6, decimal_places=3, read_only=True, allow_null=True)
    box_count = serializers.SerializerMethodField()
    current_boxes = serializers.SerializerMethodField()
    sessions = serializers.SerializerMethodField()

    class Meta:
        model = Farmer
        fields = ['id', 'name', 'nickname', 'phone', 'type', 'price_per_kg', 'suggested_price_per_kg', 'date_added',
                  'total_amount_due', 'total_amount_paid', 'remaining_amount', 'payment_status',
                  'last_processing_date', 'box_count', 'current_boxes', 'sessions',
                  'created_at', 'updated_at']
        read_only_fields = ['total_amount_due', 'total_amount_paid', 'payment_status',
                            'last_processing_date', 'created_at', 'updated_at']

    def get_box_count(self, obj):
        annotated = getattr(obj, 'in_use_box_count', None)
        if annotated is not None:
            return annotated
        return obj.boxes.filter(status=Box.STATUS_IN_USE).count()

    def get_current_boxes(self, obj):
        boxes = obj.boxes.filter(status=Box.STATUS_IN_USE).order_by('-assigned_at')
        return BoxSerializer(boxes, many=True).data

    def get_sessions(self, obj):
        from backend.processing.serializers import ProcessingSessionSerializer
        sessions = obj.sessions.order_by('-created_at')
        return ProcessingSessionSerializer(sessions, many=True).data

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context.get('include_boxes'):
            data.pop('current_boxes', None)
        if not self.context.get('include_sessions'):
            data.pop('sessions', None)
        return data

    def validate_name(self, value):
        value = ' '.join(value.split())
        if len(value) < 2 or len(value) > 100:
            raise serializers.ValidationError('Name must be between 2 and 100 characters')
        if len(value.split(' ')) < 2:
            raise serializers.ValidationError('Name must contain at least a first and a last name')
        return value

    def validate_phone(self, value):
        if value in (None, ''):
            return None
        value = value.strip()
        if not PHONE_PATTERN.match(value):
            raise serializers.ValidationError('Invalid phone number')
        return value

    def validate_price_per_kg(self, value):
        if value is None:
            return value
        if value < Decimal('0.01') or value > Decimal('10'):
            raise serializers.ValidationError('Price per kg must be between 0.01 and 10')
        return value


class BoxAssignSerializer(serializers.Serializer):
    farmer = serializers.IntegerField()
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=Decimal('0.1'),
                                      required=False, allow_null=True)
    type = serializers.ChoiceField(choices=Box.TYPE_CHOICES, required=False)


class BoxUpdateSerializer(serializers.Serializer):
    new_id = serializers.CharField(max_length=20, required=False)
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=Decimal('0.1'),
                                      required=False, allow_null=True)
    type = serializers.ChoiceField(choices=Box.TYPE_CHOICES, required=False)


class BulkBoxActionSerializer(serializers.Serializer):
    ACTION_CHOICES = ['select', 'unselect', 'delete']

    box_ids = serializers.ListField(child=serializers.CharField(max_length=20), min_length=1)
    action = serializers.ChoiceField(choices=ACTION_CHOICES)


class BoxValidateSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=20, allow_blank=True)
    type = serializers.ChoiceField(choices=Box.TYPE_CHOICES)
    exclude_box_id = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)


class FarmerBoxInputSerializer(serializers.Serializer):
    """One box to put in a farmer's name; chkara sacks are numbered automatically"""
    id = serializers.CharField(max_length=20, required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=Box.TYPE_CHOICES)
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=Decimal('0.1'),
                                      required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['type'] != 'chkara' and not (attrs.get('id') or '').strip():
            raise serializers.ValidationError({'id': 'Box id is required for non-chkara boxes'})
        return attrs


class FarmerBoxBulkSerializer(serializers.Serializer):
    boxes = FarmerBoxInputSerializer(many=True)

    def validate_boxes(self, value):
        max_boxes = settings.HUILERIE['MAX_BULK_BOXES']
        if not value:
            raise serializers.ValidationError('At least one box is required')
        if len(value) > max_boxes:
            raise serializers.ValidationError(f'At most {max_boxes} boxes per request')
        ids = [b['id'].strip() for b in value if b['type'] != 'chkara']
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError('Duplicate box ids in request')
        return value
