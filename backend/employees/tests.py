"""
Test suite for the employees module
Tests: Employees CRUD, attendance upsert, salary payments
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Employee, Attendance, EmployeePayment


class EmployeeTests(TestCase):
    """Test employee endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_employee(self):
        data = {'name': ' Karim Jlassi ', 'position': 'Presseur', 'phone': ''}
        response = self.client.post('/api/v1/employees/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Karim Jlassi')
        self.assertIsNone(response.data['phone'])
        self.assertIsNotNone(response.data['hire_date'])
        self.assertEqual(Decimal(response.data['total_paid']), Decimal('0'))

    def test_name_required(self):
        response = self.client.post('/api/v1/employees/', {'name': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_includes_total_paid_and_attendance(self):
        employee = TestDataFactory.create_employee()
        EmployeePayment.objects.create(employee=employee, amount=Decimal('100.000'))
        EmployeePayment.objects.create(employee=employee, amount=Decimal('50.500'))
        Attendance.objects.create(employee=employee, date='2024-11-01', status='present')
        Attendance.objects.create(employee=employee, date='2024-11-02', status='absent')

        response = self.client.get('/api/v1/employees/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data[0]['total_paid']), Decimal('150.500'))
        self.assertEqual([a['status'] for a in response.data[0]['recent_attendance']], ['absent', 'present'])

    def test_update_employee(self):
        employee = TestDataFactory.create_employee()
        response = self.client.patch(f'/api/v1/employees/{employee.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

    def test_delete_employee_cascades(self):
        employee = TestDataFactory.create_employee()
        EmployeePayment.objects.create(employee=employee, amount=Decimal('10.000'))
        response = self.client.delete(f'/api/v1/employees/{employee.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Employee.objects.exists())
        self.assertFalse(EmployeePayment.objects.exists())


class AttendanceTests(TestCase):
    """One mark per employee and day, set again to change it"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.employee = TestDataFactory.create_employee()

    def test_mark_then_update_same_day(self):
        data = {'employee': self.employee.id, 'date': '2024-11-05', 'status': 'present'}
        response = self.client.post('/api/v1/attendance/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        data['status'] = 'half_day'
        response = self.client.post('/api/v1/attendance/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'half_day')
        self.assertEqual(Attendance.objects.count(), 1)

    def test_invalid_status_rejected(self):
        data = {'employee': self.employee.id, 'date': '2024-11-05', 'status': 'holiday'}
        response = self.client.post('/api/v1/attendance/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_employee_and_date(self):
        other = TestDataFactory.create_employee()
        Attendance.objects.create(employee=self.employee, date='2024-11-05')
        Attendance.objects.create(employee=self.employee, date='2024-11-06')
        Attendance.objects.create(employee=other, date='2024-11-05')

        response = self.client.get(f'/api/v1/attendance/?employee={self.employee.id}')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/attendance/?date=2024-11-05')
        self.assertEqual(len(response.data), 2)


class EmployeePaymentTests(TestCase):
    """Test salary payment endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.employee = TestDataFactory.create_employee()

    def test_create_payment(self):
        data = {'employee': self.employee.id, 'amount': '300.000', 'notes': 'Salaire semaine 1'}
        response = self.client.post('/api/v1/employee-payments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['employee_name'], self.employee.name)
        self.assertIsNotNone(response.data['payment_date'])

    def test_negative_amount_rejected(self):
        data = {'employee': self.employee.id, 'amount': '-1'}
        response = self.client.post('/api/v1/employee-payments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filtered_by_employee(self):
        other = TestDataFactory.create_employee()
        EmployeePayment.objects.create(employee=self.employee, amount=Decimal('1.000'))
        EmployeePayment.objects.create(employee=other, amount=Decimal('2.000'))
        response = self.client.get(f'/api/v1/employee-payments/?employee={self.employee.id}')
        self.assertEqual(len(response.data), 1)

    def test_delete_payment(self):
        payment = EmployeePayment.objects.create(employee=self.employee, amount=Decimal('1.000'))
        response = self.client.delete(f'/api/v1/employee-payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
