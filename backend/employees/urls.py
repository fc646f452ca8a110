from django.urls import path
from . import views

urlpatterns = [
    path('employees/', views.employee_list_create, name='employee-list-create'),
    path('employees/<int:pk>/', views.employee_detail, name='employee-detail'),
    path('attendance/', views.attendance_list_create, name='attendance-list-create'),
    path('employee-payments/', views.employee_payment_list_create, name='employee-payment-list-create'),
    path('employee-payments/<int:pk>/', views.employee_payment_detail, name='employee-payment-detail'),
]
