"""
Test suite for the finance module
Tests: Ledger listing with totals, manual debits/credits, deletion rules
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Transaction
from .utils import ledger_totals


class LedgerTotalsTests(TestCase):

    def test_totals_by_type(self):
        Transaction.objects.create(type='FARMER_PAYMENT', amount=Decimal('20.000'), description='p')
        Transaction.objects.create(type='DEBIT', amount=Decimal('5.000'), description='d')
        Transaction.objects.create(type='CREDIT', amount=Decimal('-8.000'), description='c')

        totals = ledger_totals(Transaction.objects.all())
        self.assertEqual(totals['farmer_payments'], Decimal('20.000'))
        self.assertEqual(totals['debits'], Decimal('5.000'))
        self.assertEqual(totals['credits'], Decimal('8.000'))
        self.assertEqual(totals['net_revenue'], Decimal('17.000'))

    def test_empty_ledger(self):
        totals = ledger_totals(Transaction.objects.all())
        self.assertEqual(totals['net_revenue'], Decimal('0.000'))


class TransactionTests(TestCase):
    """Test ledger endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_debit(self):
        data = {'type': 'DEBIT', 'amount': '12.500', 'description': 'Vente de grignons'}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['amount']), Decimal('12.500'))
        self.assertEqual(response.data['created_by_username'], self.user.username)
        self.assertTrue(AuditLog.objects.filter(action='transaction_create').exists())

    def test_credit_stored_negative(self):
        """Credits are money going out"""
        data = {'type': 'CREDIT', 'amount': '30', 'description': 'Gasoil', 'destination': 'Station'}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Transaction.objects.get().amount, Decimal('-30.000'))

    def test_farmer_payment_cannot_be_created_manually(self):
        data = {'type': 'FARMER_PAYMENT', 'amount': '5', 'description': 'x'}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blank_description_rejected(self):
        data = {'type': 'DEBIT', 'amount': '5', 'description': '   '}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_amount_rejected(self):
        data = {'type': 'DEBIT', 'amount': '0', 'description': 'rien'}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_with_totals_and_type_filter(self):
        Transaction.objects.create(type='DEBIT', amount=Decimal('5.000'), description='d')
        Transaction.objects.create(type='CREDIT', amount=Decimal('-2.000'), description='c')

        response = self.client.get('/api/v1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['totals']['net_revenue'], Decimal('3.000'))

        response = self.client.get('/api/v1/transactions/?type=CREDIT')
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['totals']['credits'], Decimal('2.000'))

    def test_delete_manual_transaction(self):
        entry = Transaction.objects.create(type='DEBIT', amount=Decimal('5.000'), description='d')
        response = self.client.delete(f'/api/v1/transactions/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Transaction.objects.exists())

    def test_session_payment_cannot_be_deleted_here(self):
        farmer = TestDataFactory.create_farmer()
        session = TestDataFactory.create_session(farmer)
        entry = Transaction.objects.create(
            type='FARMER_PAYMENT', amount=Decimal('5.000'), description='p', farmer=farmer, session=session
        )
        response = self.client.delete(f'/api/v1/transactions/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Transaction.objects.filter(pk=entry.id).exists())
