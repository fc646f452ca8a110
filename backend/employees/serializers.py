from decimal import Decimal
from django.utils import timezone
from rest_framework import serializers
from .models import Employee, Attendance, EmployeePayment


class AttendanceSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source='employee.name', read_only=True)

    class Meta:
        model = Attendance
        fields = ['id', 'employee', 'employee_name', 'date', 'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        # (employee, date) is upserted by the view
        validators = []


class EmployeeSerializer(serializers.ModelSerializer):
    """
    Employee with the last 30 attendance marks and the total paid.
    Pass include_attendance=False in the context to skip the attendance rows.
    """
    recent_attendance = serializers.SerializerMethodField()
    total_paid = serializers.SerializerMethodField()

    class Meta:
        model = Employee
        fields = ['id', 'name', 'phone', 'position', 'hire_date', 'is_active',
                  'recent_attendance', 'total_paid', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_recent_attendance(self, obj):
        if not self.context.get('include_attendance', True):
            return None
        rows = obj.attendance.all()[:30]
        return [
            {'id': row.id, 'date': row.date, 'status': row.status, 'notes': row.notes}
            for row in rows
        ]

    def get_total_paid(self, obj):
        total = getattr(obj, 'total_paid', None)
        if total is None:
            total = sum((p.amount for p in obj.payments.all()), Decimal('0.000'))
        return total

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Employee name is required")
        return value

    def validate_phone(self, value):
        return (value or '').strip() or None

    def validate_position(self, value):
        return (value or '').strip() or None


class EmployeePaymentSerializer(serializers.ModelSerializer):
    employee_name = serializers.CharField(source='employee.name', read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    payment_date = serializers.DateTimeField(required=False, allow_null=True)

    class Meta:
        model = EmployeePayment
        fields = ['id', 'employee', 'employee_name', 'amount', 'notes', 'payment_date', 'created_at']
        read_only_fields = ['created_at']

    def create(self, validated_data):
        validated_data['payment_date'] = validated_data.get('payment_date') or timezone.now()
        return super().create(validated_data)
