"""
Test suite for the processing module
Tests: Session creation from boxes, completion, payments, unpay, grouped payment, deletion
"""
from decimal import Decimal
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.farmers.models import Box
from backend.finance.models import Transaction
from .models import ProcessingSession, PaymentTransaction
from .utils import (
    PaymentError, compute_payment, grouped_session_number, merge_session_boxes, next_session_number,
    parse_session_number,
)


class PaymentArithmeticTests(SimpleTestCase):
    """compute_payment pricing and status rules"""

    def test_full_payment(self):
        result = compute_payment(Decimal('100.00'), Decimal('0.150'), Decimal('0'), Decimal('15.000'))
        self.assertEqual(result['total_price'], Decimal('15.000'))
        self.assertEqual(result['remaining_amount'], Decimal('0.000'))
        self.assertEqual(result['payment_status'], 'paid')

    def test_partial_payment_accumulates(self):
        result = compute_payment(Decimal('100.00'), Decimal('0.150'), Decimal('5.000'), Decimal('4.000'))
        self.assertEqual(result['total_paid'], Decimal('9.000'))
        self.assertEqual(result['remaining_amount'], Decimal('6.000'))
        self.assertEqual(result['payment_status'], 'partial')

    def test_zero_payment_is_unpaid(self):
        result = compute_payment(Decimal('10.00'), Decimal('0.200'), Decimal('0'), Decimal('0'))
        self.assertEqual(result['payment_status'], 'unpaid')
        self.assertEqual(result['total_price'], Decimal('2.000'))

    def test_overpayment_rejected(self):
        with self.assertRaises(PaymentError):
            compute_payment(Decimal('10.00'), Decimal('0.200'), Decimal('1.500'), Decimal('1.000'))

    def test_zero_price_rejected(self):
        with self.assertRaises(PaymentError):
            compute_payment(Decimal('10.00'), Decimal('0'), Decimal('0'), Decimal('0'))

    def test_parse_session_number(self):
        self.assertEqual(parse_session_number('S#12'), 12)
        self.assertEqual(parse_session_number('S#3 (Groupé)'), 3)
        self.assertIsNone(parse_session_number('legacy'))


class SessionNumberingTests(TestCase):

    def test_next_number_follows_highest(self):
        farmer = TestDataFactory.create_farmer()
        self.assertEqual(next_session_number(), 'S#1')
        TestDataFactory.create_session(farmer, session_number='S#2')
        TestDataFactory.create_session(farmer, session_number='S#9 (Groupé)')
        self.assertEqual(next_session_number(), 'S#10')

    def test_merge_boxes_sums_repeated_ids(self):
        farmer = TestDataFactory.create_farmer()
        first = TestDataFactory.create_session(farmer, box_ids=('1', '2'), box_weight=Decimal('10.00'))
        second = TestDataFactory.create_session(farmer, box_ids=('2', '3'), box_weight=Decimal('5.00'))
        merged = {b['box_id']: b['box_weight'] for b in merge_session_boxes([first, second])}
        self.assertEqual(merged, {'1': Decimal('10.00'), '2': Decimal('15.00'), '3': Decimal('5.00')})

    def test_grouped_number_keeps_only_the_first_number(self):
        self.assertEqual(grouped_session_number('S#4'), 'S#4 (Groupé)')
        self.assertEqual(grouped_session_number('S#4 (Groupé)'), 'S#4 (Groupé)')
        self.assertEqual(grouped_session_number('Ancienne (Groupé)'), 'Ancienne (Groupé)')


class SessionTests(TestCase):
    """Test session endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.farmer = TestDataFactory.create_farmer()

    def _processed_session(self, **kwargs):
        return TestDataFactory.create_session(
            self.farmer, box_weight=Decimal('50.00'), processed=True, oil_weight=Decimal('10.00'), **kwargs
        )

    def test_create_session_consumes_boxes(self):
        """Boxes become available again and are snapshotted on the session"""
        TestDataFactory.create_box('1', farmer=self.farmer, weight='30.00')
        TestDataFactory.create_box('Chkara1', box_type='chkara', farmer=self.farmer, weight='12.50')
        data = {'farmer': self.farmer.id, 'box_ids': ['1', 'Chkara1'], 'total_box_weight': '42.50', 'box_count': 2}

        response = self.client.post('/api/v1/sessions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['session_number'], 'S#1')
        self.assertEqual(response.data['processing_status'], 'pending')
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertEqual([b['box_id'] for b in response.data['session_boxes']], ['1', 'Chkara1'])

        self.assertFalse(Box.objects.filter(status=Box.STATUS_IN_USE).exists())
        self.assertTrue(Box.objects.filter(pk='Chkara1', status=Box.STATUS_AVAILABLE).exists())
        self.farmer.refresh_from_db()
        self.assertIsNotNone(self.farmer.last_processing_date)
        self.assertTrue(AuditLog.objects.filter(action='session_create').exists())

    def test_create_session_rejects_boxes_not_held(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        TestDataFactory.create_box('2')
        data = {'farmer': self.farmer.id, 'box_ids': ['1', '2'], 'total_box_weight': '50', 'box_count': 2}

        response = self.client.post('/api/v1/sessions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['box_ids'], ['2'])
        self.assertEqual(ProcessingSession.objects.count(), 0)
        self.assertEqual(Box.objects.get(pk='1').status, Box.STATUS_IN_USE)

    def test_create_session_unknown_farmer(self):
        data = {'farmer': 9999, 'box_ids': ['1'], 'total_box_weight': '50', 'box_count': 1}
        response = self.client.post('/api/v1/sessions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_sessions_filtered(self):
        TestDataFactory.create_session(self.farmer)
        self._processed_session()
        response = self.client.get('/api/v1/sessions/?processing_status=processed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/sessions/?payment_status=pending')
        self.assertEqual(response.data['count'], 2)

    def test_complete_session(self):
        session = TestDataFactory.create_session(self.farmer)
        data = {'oil_weight': '12.40', 'processing_date': '2024-11-20T10:00:00Z'}
        response = self.client.put(f'/api/v1/sessions/{session.id}/complete/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['processing_status'], 'processed')
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertEqual(Decimal(response.data['oil_weight']), Decimal('12.40'))

    def test_payment_requires_processed_session(self):
        session = TestDataFactory.create_session(self.farmer)
        data = {'price_per_kg': '0.150', 'amount_paid': '1.000'}
        response = self.client.put(f'/api/v1/sessions/{session.id}/payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partial_then_full_payment(self):
        """Payments accumulate and are mirrored in the ledger"""
        session = self._processed_session()

        response = self.client.put(
            f'/api/v1/sessions/{session.id}/payment/', {'price_per_kg': '0.200', 'amount_paid': '4.000'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'partial')
        self.assertEqual(Decimal(response.data['total_price']), Decimal('10.000'))
        self.assertEqual(Decimal(response.data['remaining_amount']), Decimal('6.000'))

        response = self.client.put(
            f'/api/v1/sessions/{session.id}/payment/', {'price_per_kg': '0.200', 'amount_paid': '6.000'}, format='json'
        )
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertIsNotNone(response.data['payment_date'])
        self.assertEqual(len(response.data['payment_transactions']), 2)

        ledger = Transaction.objects.filter(session=session, type='FARMER_PAYMENT')
        self.assertEqual(ledger.count(), 2)
        self.farmer.refresh_from_db()
        self.assertEqual(self.farmer.total_amount_paid, Decimal('10.000'))
        self.assertEqual(self.farmer.payment_status, 'paid')

    def test_overpayment_rejected(self):
        session = self._processed_session()
        response = self.client.put(
            f'/api/v1/sessions/{session.id}/payment/', {'price_per_kg': '0.200', 'amount_paid': '11.000'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PaymentTransaction.objects.exists())

    def test_unpay_cancels_payments(self):
        session = self._processed_session()
        self.client.put(
            f'/api/v1/sessions/{session.id}/payment/', {'price_per_kg': '0.200', 'amount_paid': '10.000'}, format='json'
        )

        response = self.client.post(f'/api/v1/sessions/{session.id}/unpay/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertIsNone(response.data['total_price'])
        self.assertFalse(PaymentTransaction.objects.filter(session=session).exists())
        self.assertFalse(Transaction.objects.filter(session=session).exists())

        response = self.client.post(f'/api/v1/sessions/{session.id}/unpay/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_paid_session_is_locked(self):
        session = self._processed_session(payment_status='paid', total_price=Decimal('10.000'),
                                          amount_paid=Decimal('10.000'))
        self.assertEqual(
            self.client.delete(f'/api/v1/sessions/{session.id}/').status_code, status.HTTP_400_BAD_REQUEST
        )
        self.assertEqual(
            self.client.put(f'/api/v1/sessions/{session.id}/reset/').status_code, status.HTTP_400_BAD_REQUEST
        )
        response = self.client.put(
            f'/api/v1/sessions/{session.id}/complete/',
            {'oil_weight': '1', 'processing_date': '2024-11-20T10:00:00Z'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset_session(self):
        session = self._processed_session()
        response = self.client.put(f'/api/v1/sessions/{session.id}/reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['processing_status'], 'pending')
        self.assertIsNone(response.data['processing_date'])

    def test_update_payment_status_pending_alias(self):
        session = self._processed_session(payment_status='paid')
        response = self.client.patch(f'/api/v1/sessions/{session.id}/', {'payment_status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertIsNone(response.data['payment_date'])

    def test_delete_partially_paid_session(self):
        """Deleting returns the refund and releases snapshot boxes the farmer still holds"""
        session = self._processed_session(box_ids=('4', '5'))
        self.client.put(
            f'/api/v1/sessions/{session.id}/payment/', {'price_per_kg': '0.100', 'amount_paid': '3.000'}, format='json'
        )
        TestDataFactory.create_box('4', farmer=self.farmer)
        TestDataFactory.create_box('5', farmer=TestDataFactory.create_farmer())

        response = self.client.delete(f'/api/v1/sessions/{session.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['refund_amount']), Decimal('3.000'))
        self.assertTrue(response.data['was_partially_paid'])
        self.assertEqual(response.data['boxes_released'], 1)
        self.assertEqual(Box.objects.get(pk='5').status, Box.STATUS_IN_USE)
        self.assertFalse(Transaction.objects.filter(type='FARMER_PAYMENT').exists())

    def test_bulk_payment_groups_sessions(self):
        first = self._processed_session(box_ids=('1',), session_number='S#1', notes='premier')
        second = self._processed_session(box_ids=('2',), session_number='S#2')
        data = {'session_ids': [first.id, second.id], 'price_per_kg': '0.100', 'amount_paid': '10.000'}

        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['session_number'], 'S#1 (Groupé)')
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(Decimal(response.data['total_box_weight']), Decimal('100.00'))
        self.assertEqual(response.data['box_count'], 2)
        self.assertEqual(ProcessingSession.objects.count(), 1)
        self.assertEqual(Transaction.objects.filter(type='FARMER_PAYMENT').count(), 1)

    def test_bulk_payment_keeps_session_notes(self):
        first = self._processed_session(box_ids=('1',), session_number='S#1', notes='premier')
        second = self._processed_session(box_ids=('2',), session_number='S#2', notes='second')
        data = {'session_ids': [first.id, second.id], 'price_per_kg': '0.100', 'amount_paid': '4.000',
                'notes': 'cash au guichet'}

        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['notes'], 'Note session S#1:\npremier\n\nNote session S#2:\nsecond')
        payment = PaymentTransaction.objects.get(session_id=response.data['id'])
        self.assertEqual(payment.notes, 'cash au guichet')

    def test_bulk_payment_default_notes(self):
        first = self._processed_session(box_ids=('1',), session_number='S#1')
        second = self._processed_session(box_ids=('2',), session_number='S#2')
        data = {'session_ids': [first.id, second.id], 'price_per_kg': '0.100', 'amount_paid': '0'}
        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.data['notes'], 'Session groupée de 2 sessions')

    def test_regrouping_a_grouped_session(self):
        first = self._processed_session(box_ids=('1',), session_number='S#1')
        second = self._processed_session(box_ids=('2',), session_number='S#2')
        data = {'session_ids': [first.id, second.id], 'price_per_kg': '0.100', 'amount_paid': '0'}
        grouped = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json').data
        third = self._processed_session(box_ids=('3',), session_number='S#3')

        data['session_ids'] = [grouped['id'], third.id]
        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['session_number'], 'S#1 (Groupé)')
        self.assertEqual(response.data['box_count'], 3)
        self.assertEqual(ProcessingSession.objects.count(), 1)

    def test_bulk_payment_rejects_other_farmer(self):
        first = self._processed_session()
        other = TestDataFactory.create_session(TestDataFactory.create_farmer(), processed=True,
                                               oil_weight=Decimal('5.00'))
        data = {'session_ids': [first.id, other.id], 'price_per_kg': '0.100', 'amount_paid': '0'}
        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ProcessingSession.objects.count(), 2)

    def test_bulk_payment_requires_processed_sessions(self):
        first = self._processed_session()
        pending = TestDataFactory.create_session(self.farmer)
        data = {'session_ids': [first.id, pending.id], 'price_per_kg': '0.100', 'amount_paid': '0'}
        response = self.client.post('/api/v1/sessions/bulk-payment/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary(self):
        self._processed_session(total_price=Decimal('8.000'), amount_paid=Decimal('3.000'))
        TestDataFactory.create_session(self.farmer)
        response = self.client.get('/api/v1/sessions/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['total_price'], Decimal('8.000'))
        self.assertEqual(response.data['amount_paid'], Decimal('3.000'))
