"""
Test suite for the reports module
Tests: Dashboard metrics and stats, real-time snapshot, Excel exports
"""
from decimal import Decimal
from io import BytesIO
from django.conf import settings
from django.core.cache import cache
from django.test import TestCase, SimpleTestCase
from openpyxl import load_workbook
from rest_framework import status
from backend.collectors.models import CollectorPayment
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.employees.models import Attendance, EmployeePayment
from .exports import (
    build_collectors_workbook, build_employees_workbook, build_farmers_workbook,
    build_purchases_workbook, normalize_export_value,
)


class ExportValueTests(SimpleTestCase):

    def test_normalize_values(self):
        self.assertEqual(normalize_export_value(None), '')
        self.assertEqual(normalize_export_value(Decimal('1.500')), 1.5)
        self.assertEqual(normalize_export_value(3), 3)
        self.assertEqual(normalize_export_value(['a']), "['a']")


class DashboardTests(TestCase):
    """Test dashboard endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.farmer = TestDataFactory.create_farmer()

    def test_dashboard_metrics(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        TestDataFactory.create_box('2')
        TestDataFactory.create_box('Chkara1', box_type='chkara', farmer=self.farmer)
        TestDataFactory.create_session(self.farmer, payment_status='partial', amount_paid=Decimal('4.000'))
        TestDataFactory.create_session(self.farmer, processed=True, oil_weight=Decimal('12.00'))

        response = self.client.get('/api/v1/dashboard/?refresh=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        metrics = response.data['metrics']
        self.assertEqual(metrics['total_farmers'], 1)
        self.assertEqual(metrics['total_boxes'], 600)
        self.assertEqual(metrics['active_boxes'], 1)
        self.assertEqual(metrics['pending_extractions'], 1)
        self.assertEqual(metrics['today_revenue'], Decimal('4.000'))
        self.assertEqual(metrics['chkara_count'], 1)
        self.assertEqual(response.data['box_utilization']['used'], 1)
        self.assertEqual(response.data['session_status_counts']['processed'], 1)
        self.assertTrue(len(response.data['recent_activity']) >= 3)

    def test_dashboard_is_cached(self):
        self.client.get('/api/v1/dashboard/')
        TestDataFactory.create_farmer()
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.data['metrics']['total_farmers'], 1)
        response = self.client.get('/api/v1/dashboard/?refresh=true')
        self.assertEqual(response.data['metrics']['total_farmers'], 2)

    def test_dashboard_stats(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        TestDataFactory.create_session(self.farmer)
        response = self.client.get('/api/v1/dashboard/stats/?refresh=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['revenue_stats']['daily']), 7)
        self.assertEqual(response.data['box_stats']['type_distribution'], [{'type': 'normal', 'count': 1}])
        self.assertEqual(len(response.data['session_stats']['recent']), 1)

    def test_real_time(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        TestDataFactory.create_session(self.farmer)
        response = self.client.get('/api/v1/dashboard/real-time/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts']['boxes_in_use'], 1)
        self.assertEqual(response.data['counts']['pending_sessions'], 1)
        self.assertEqual(response.data['today']['sessions'], 1)
        self.assertEqual(response.data['utilization_status'], 'low')

    def test_dashboard_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ExportTests(TestCase):
    """Excel workbooks and their download endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _rows(self, sheet):
        return list(sheet.iter_rows(values_only=True))

    def test_farmers_workbook(self):
        farmer = TestDataFactory.create_farmer(name='Ali Ben Salah')
        TestDataFactory.create_session(farmer, box_ids=('2', '10'), box_weight=Decimal('50.00'), processed=True,
                                       oil_weight=Decimal('20.00'), total_price=Decimal('15.000'),
                                       amount_paid=Decimal('5.000'), payment_status='partial')

        rows = self._rows(build_farmers_workbook().active)
        self.assertEqual(rows[0][0], 'Nom Agriculteur')
        self.assertEqual(len(rows), 2)
        row = rows[1]
        self.assertEqual(row[0], 'Ali Ben Salah')
        self.assertEqual(row[3], '2, 10')
        self.assertEqual(row[8], 10.0)
        self.assertEqual(row[11], 20.0)

    def test_collectors_workbook(self):
        group = TestDataFactory.create_collector_group(name='Groupe Sud')
        TestDataFactory.create_collection(group, chakra=2, galba=0, price=Decimal('10.000'))
        CollectorPayment.objects.create(group=group, amount=Decimal('5.000'))

        workbook = build_collectors_workbook()
        self.assertEqual(workbook.sheetnames, ['Collectes', 'Stats par Groupe', 'Paiements'])
        collections = self._rows(workbook['Collectes'])
        self.assertEqual(collections[-1][0], 'TOTAL')
        self.assertEqual(collections[-1][10], 20.0)
        stats = self._rows(workbook['Stats par Groupe'])
        self.assertEqual(stats[1][6], 15.0)

    def test_employees_workbook(self):
        employee = TestDataFactory.create_employee(name='Karim Jlassi')
        Attendance.objects.create(employee=employee, date='2024-11-01', status='present')
        Attendance.objects.create(employee=employee, date='2024-11-02', status='half_day')
        EmployeePayment.objects.create(employee=employee, amount=Decimal('40.000'))

        workbook = build_employees_workbook()
        self.assertEqual(workbook.sheetnames, ['Employés', 'Paiements'])
        row = self._rows(workbook['Employés'])[1]
        self.assertEqual(row[0], 'Karim Jlassi')
        self.assertEqual(row[5:8], (1, 0, 1))
        self.assertEqual(row[8], 40.0)

    def test_purchases_workbook(self):
        safe = TestDataFactory.create_safe(name='Coffre A')
        TestDataFactory.create_purchase(safe, oil_produced=Decimal('18.00'))
        TestDataFactory.create_purchase(safe)

        workbook = build_purchases_workbook()
        self.assertEqual(workbook.sheetnames, ['Achats', 'Stats par Coffre'])
        purchases = self._rows(workbook['Achats'])
        self.assertIn('En attente', [row[6] for row in purchases[1:]])
        stats = self._rows(workbook['Stats par Coffre'])
        self.assertEqual(stats[1][1], 2)
        self.assertEqual(stats[1][4], 18.0)

    def test_workbook_uses_company_and_currency_settings(self):
        huilerie = {**settings.HUILERIE, 'COMPANY_NAME': 'HUILERIE TEST', 'CURRENCY': 'TND'}
        with self.settings(HUILERIE=huilerie):
            workbook = build_employees_workbook()
        self.assertEqual(workbook.properties.creator, 'HUILERIE TEST')
        headers = self._rows(workbook['Paiements'])[0]
        self.assertEqual(headers[1], 'Montant (TND)')

    def test_export_endpoint_returns_xlsx(self):
        TestDataFactory.create_farmer()
        for url in ('/api/v1/export/excel/', '/api/v1/export/excel-collectors/',
                    '/api/v1/export/excel-employees/', '/api/v1/export/excel-purchases/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertIn('attachment; filename=', response['Content-Disposition'])
            workbook = load_workbook(BytesIO(response.content))
            self.assertTrue(workbook.sheetnames)
