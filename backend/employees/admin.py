from django.contrib import admin
from .models import Employee, Attendance, EmployeePayment


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'position', 'hire_date', 'is_active']
    list_filter = ['is_active', 'position']
    search_fields = ['name', 'phone', 'position']


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ['employee', 'date', 'status']
    list_filter = ['status', 'date']
    search_fields = ['employee__name']


@admin.register(EmployeePayment)
class EmployeePaymentAdmin(admin.ModelAdmin):
    list_display = ['employee', 'amount', 'payment_date']
    list_filter = ['payment_date']
    search_fields = ['employee__name']
