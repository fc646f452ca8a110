import django_filters
from .models import Attendance, EmployeePayment


class AttendanceFilter(django_filters.FilterSet):
    employee = django_filters.NumberFilter(field_name='employee_id')
    date = django_filters.DateFilter(field_name='date')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = Attendance
        fields = ['employee', 'date', 'date_from', 'date_to']


class EmployeePaymentFilter(django_filters.FilterSet):
    employee = django_filters.NumberFilter(field_name='employee_id')

    class Meta:
        model = EmployeePayment
        fields = ['employee']
