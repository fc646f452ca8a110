"""
Test suite for the collectors module
Tests: Unit conversion, collector groups, daily collections, payments, group summary
"""
from decimal import Decimal
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import CollectorGroup, DailyCollection, CollectorPayment
from .units import collection_amount, normalize_quantities, total_chakra


class UnitConversionTests(SimpleTestCase):
    """5 galba = 1 chakra"""

    def test_normalize_folds_galba(self):
        self.assertEqual(normalize_quantities(7, 12), (9, 2))
        self.assertEqual(normalize_quantities(0, 5), (1, 0))
        self.assertEqual(normalize_quantities(3, 4), (3, 4))

    def test_normalize_handles_missing_values(self):
        self.assertEqual(normalize_quantities(None, None), (0, 0))

    def test_total_chakra_includes_nchira(self):
        self.assertEqual(total_chakra(3, 2), Decimal('3.40'))
        self.assertEqual(total_chakra(3, 2, 1, 1), Decimal('4.60'))

    def test_collection_amount(self):
        self.assertEqual(collection_amount(Decimal('3.40'), Decimal('12.500')), Decimal('42.500'))
        self.assertEqual(collection_amount(Decimal('3.40'), None), Decimal('0.000'))


class CollectorGroupTests(TestCase):
    """Test collector group endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_group(self):
        response = self.client.post('/api/v1/collector-groups/', {'name': ' Groupe Nord '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Groupe Nord')
        self.assertTrue(response.data['is_active'])

    def test_duplicate_name_rejected_case_insensitive(self):
        TestDataFactory.create_collector_group(name='Groupe Nord')
        response = self.client.post('/api/v1/collector-groups/', {'name': 'groupe nord'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_groups_with_recent_collections(self):
        group = TestDataFactory.create_collector_group()
        TestDataFactory.create_collection(group)
        response = self.client.get('/api/v1/collector-groups/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(len(response.data[0]['recent_collections']), 1)

    def test_deactivate_group(self):
        group = TestDataFactory.create_collector_group()
        response = self.client.patch(f'/api/v1/collector-groups/{group.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        group.refresh_from_db()
        self.assertFalse(group.is_active)

    def test_delete_group_removes_collections(self):
        group = TestDataFactory.create_collector_group()
        TestDataFactory.create_collection(group)
        response = self.client.delete(f'/api/v1/collector-groups/{group.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CollectorGroup.objects.exists())
        self.assertFalse(DailyCollection.objects.exists())


class DailyCollectionTests(TestCase):
    """Test daily collection endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.group = TestDataFactory.create_collector_group()

    def _payload(self, **overrides):
        data = {
            'group': self.group.id,
            'collection_date': '2024-11-15T08:00:00Z',
            'location': 'Chebba',
            'client_name': 'Hedi',
            'chakra_count': 7,
            'galba_count': 12,
            'price_per_chakra': '10.000',
        }
        data.update(overrides)
        return data

    def test_create_collection_normalizes_counts(self):
        response = self.client.post('/api/v1/collections/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['chakra_count'], 9)
        self.assertEqual(response.data['galba_count'], 2)
        self.assertEqual(Decimal(response.data['total_chakra']), Decimal('9.40'))
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('94.000'))

    def test_nchira_counts_added_to_total(self):
        payload = self._payload(chakra_count=1, galba_count=0, nchira_chakra_count=0, nchira_galba_count=6)
        response = self.client.post('/api/v1/collections/', payload, format='json')
        self.assertEqual(response.data['nchira_chakra_count'], 1)
        self.assertEqual(response.data['nchira_galba_count'], 1)
        self.assertEqual(Decimal(response.data['total_chakra']), Decimal('2.20'))

    def test_location_required(self):
        response = self.client.post('/api/v1/collections/', self._payload(location='  '), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recomputes_totals(self):
        collection = TestDataFactory.create_collection(self.group, chakra=1, galba=0, price=Decimal('5.000'))
        response = self.client.patch(f'/api/v1/collections/{collection.id}/', {'galba_count': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        collection.refresh_from_db()
        self.assertEqual(collection.chakra_count, 3)
        self.assertEqual(collection.galba_count, 0)
        self.assertEqual(collection.total_amount, Decimal('15.000'))

    def test_list_filtered_by_group_and_dates(self):
        other = TestDataFactory.create_collector_group()
        TestDataFactory.create_collection(self.group, collection_date='2024-11-10T09:00:00Z')
        TestDataFactory.create_collection(self.group, collection_date='2024-11-20T09:00:00Z')
        TestDataFactory.create_collection(other, collection_date='2024-11-20T09:00:00Z')

        response = self.client.get(f'/api/v1/collections/?group={self.group.id}&start_date=2024-11-15')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_delete_collection(self):
        collection = TestDataFactory.create_collection(self.group)
        response = self.client.delete(f'/api/v1/collections/{collection.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class CollectorPaymentTests(TestCase):
    """Test collector payments and the group summary"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.group = TestDataFactory.create_collector_group()

    def test_create_payment_defaults_date(self):
        response = self.client.post(
            '/api/v1/collector-payments/', {'group': self.group.id, 'amount': '50.000'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNotNone(response.data['payment_date'])

    def test_non_positive_payment_rejected(self):
        response = self.client.post(
            '/api/v1/collector-payments/', {'group': self.group.id, 'amount': '0'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_payment(self):
        payment = CollectorPayment.objects.create(group=self.group, amount=Decimal('5.000'))
        response = self.client.delete(f'/api/v1/collector-payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_summary_balance(self):
        """Summed galba are folded again and payments reduce the balance"""
        TestDataFactory.create_collection(self.group, chakra=1, galba=3, price=Decimal('10.000'))
        TestDataFactory.create_collection(self.group, chakra=1, galba=4, price=Decimal('10.000'))
        CollectorPayment.objects.create(group=self.group, amount=Decimal('20.000'))

        response = self.client.get(f'/api/v1/collector-groups/{self.group.id}/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['collection_count'], 2)
        self.assertEqual(response.data['chakra_count'], 3)
        self.assertEqual(response.data['galba_count'], 2)
        self.assertEqual(response.data['total_amount'], Decimal('34.000'))
        self.assertEqual(response.data['total_paid'], Decimal('20.000'))
        self.assertEqual(response.data['balance'], Decimal('14.000'))
