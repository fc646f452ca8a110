import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, DecimalField, Value, Prefetch
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404

from backend.core.utils import create_audit_log
from .filters import AttendanceFilter, EmployeePaymentFilter
from .models import Employee, Attendance, EmployeePayment
from .serializers import EmployeeSerializer, AttendanceSerializer, EmployeePaymentSerializer

logger = logging.getLogger('backend.employees')


def _employee_queryset():
    return Employee.objects.annotate(
        total_paid=Coalesce(Sum('payments__amount'), Value(Decimal('0.000')), output_field=DecimalField())
    ).prefetch_related(Prefetch('attendance', queryset=Attendance.objects.order_by('-date')))


# Employee views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def employee_list_create(request):
    """List employees with recent attendance and total paid, or create an employee"""
    if request.method == 'GET':
        employees = _employee_queryset().order_by('name')
        return Response(EmployeeSerializer(employees, many=True).data)

    serializer = EmployeeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    employee = serializer.save()
    create_audit_log(request=request, action='create', model_name='Employee',
                     object_id=employee.pk, object_name=employee.name)
    return Response(EmployeeSerializer(employee).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def employee_detail(request, pk):
    """Retrieve, update or delete an employee"""
    employee = get_object_or_404(_employee_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(EmployeeSerializer(employee).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = EmployeeSerializer(employee, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)

    create_audit_log(request=request, action='delete', model_name='Employee',
                     object_id=employee.pk, object_name=employee.name)
    employee.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Attendance views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def attendance_list_create(request):
    """List attendance marks or set the mark of an employee for a day (upsert)"""
    if request.method == 'GET':
        queryset = Attendance.objects.select_related('employee').order_by('-date', 'employee__name')
        queryset = AttendanceFilter(request.query_params, queryset=queryset).qs
        return Response(AttendanceSerializer(queryset, many=True).data)

    serializer = AttendanceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    attendance, created = Attendance.objects.update_or_create(
        employee=data['employee'],
        date=data['date'],
        defaults={'status': data.get('status', 'present'), 'notes': data.get('notes')},
    )
    return Response(
        AttendanceSerializer(attendance).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


# Employee payment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def employee_payment_list_create(request):
    """List salary payments or record one"""
    if request.method == 'GET':
        queryset = EmployeePayment.objects.select_related('employee')
        queryset = EmployeePaymentFilter(request.query_params, queryset=queryset).qs
        return Response(EmployeePaymentSerializer(queryset, many=True).data)

    serializer = EmployeePaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    payment = serializer.save()
    create_audit_log(request=request, action='create', model_name='EmployeePayment',
                     object_id=payment.pk, object_name=payment.employee.name,
                     changes={'amount': str(payment.amount)})
    logger.info(f"Payment of {payment.amount} recorded for {payment.employee.name}")
    return Response(EmployeePaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def employee_payment_detail(request, pk):
    payment = get_object_or_404(EmployeePayment.objects.select_related('employee'), pk=pk)
    create_audit_log(request=request, action='delete', model_name='EmployeePayment',
                     object_id=payment.pk, object_name=payment.employee.name,
                     changes={'amount': str(payment.amount)})
    payment.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
