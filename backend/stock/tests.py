"""
Test suite for the stock module
Tests: Oil safes, olive purchases with stock sync, moves between safes, oil sales
"""
from decimal import Decimal
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import OilSafe, OlivePurchase, OilSale
from .utils import StockError, add_oil, purchase_totals, remove_oil


class PurchaseTotalsTests(SimpleTestCase):

    def test_olive_purchase_priced_per_kg_of_olives(self):
        cost, yield_percentage = purchase_totals(Decimal('500'), Decimal('1.200'), Decimal('90'))
        self.assertEqual(cost, Decimal('600.000'))
        self.assertEqual(yield_percentage, Decimal('18.00'))

    def test_base_purchase_priced_per_kg_of_oil(self):
        cost, _ = purchase_totals(Decimal('500'), Decimal('12.000'), Decimal('90'), is_base_purchase=True)
        self.assertEqual(cost, Decimal('1080.000'))

    def test_pending_oil_has_no_yield(self):
        cost, yield_percentage = purchase_totals(Decimal('100'), Decimal('1.500'))
        self.assertEqual(cost, Decimal('150.000'))
        self.assertIsNone(yield_percentage)


class StockMovementTests(TestCase):

    def test_add_respects_capacity(self):
        safe = TestDataFactory.create_safe(capacity=Decimal('100.00'), current_stock=Decimal('90.00'))
        with self.assertRaises(StockError):
            add_oil(safe, Decimal('20'))
        add_oil(safe, Decimal('10'))
        safe.refresh_from_db()
        self.assertEqual(safe.current_stock, Decimal('100.00'))
        self.assertEqual(safe.available_capacity, Decimal('0.00'))

    def test_remove_requires_stock(self):
        safe = TestDataFactory.create_safe(current_stock=Decimal('5.00'))
        with self.assertRaises(StockError):
            remove_oil(safe, Decimal('6'))

    def test_zero_quantity_is_noop(self):
        safe = TestDataFactory.create_safe()
        add_oil(safe, None)
        remove_oil(safe, 0)
        self.assertEqual(safe.current_stock, Decimal('0.00'))


class OilSafeTests(TestCase):
    """Test safe endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_safe(self):
        response = self.client.post('/api/v1/safes/', {'name': 'Coffre A', 'capacity': '2000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['current_stock']), Decimal('0'))
        self.assertEqual(Decimal(response.data['available_capacity']), Decimal('2000'))

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_safe(name='Coffre A')
        response = self.client.post('/api/v1/safes/', {'name': 'coffre a', 'capacity': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_capacity_cannot_drop_below_stock(self):
        safe = TestDataFactory.create_safe(capacity=Decimal('100.00'), current_stock=Decimal('60.00'))
        response = self.client.patch(f'/api/v1/safes/{safe.id}/', {'capacity': '50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_safe_includes_history(self):
        safe = TestDataFactory.create_safe()
        TestDataFactory.create_purchase(safe)
        response = self.client.get(f'/api/v1/safes/{safe.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['purchases']), 1)
        self.assertEqual(response.data['purchase_count'], 1)
        self.assertEqual(response.data['pending_oil_count'], 1)

    def test_delete_empty_safe(self):
        safe = TestDataFactory.create_safe()
        response = self.client.delete(f'/api/v1/safes/{safe.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_refused_with_stock_or_history(self):
        full = TestDataFactory.create_safe(current_stock=Decimal('1.00'))
        response = self.client.delete(f'/api/v1/safes/{full.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        used = TestDataFactory.create_safe()
        TestDataFactory.create_purchase(used)
        response = self.client.delete(f'/api/v1/safes/{used.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(OilSafe.objects.count(), 2)


class OlivePurchaseTests(TestCase):
    """Purchases keep the safe stock in sync"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.safe = TestDataFactory.create_safe(capacity=Decimal('200.00'))

    def _payload(self, **overrides):
        data = {
            'safe': self.safe.id,
            'farmer_name': 'Fournisseur Sfax',
            'olive_weight': '500',
            'price_per_kg': '1.200',
            'oil_produced': '90',
        }
        data.update(overrides)
        return data

    def test_create_purchase_adds_oil(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_cost']), Decimal('600.000'))
        self.assertEqual(Decimal(response.data['yield_percentage']), Decimal('18.00'))
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('90.00'))

    def test_create_purchase_without_safe(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(safe=None), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_purchase_unknown_safe(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(safe=9999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_purchase_over_capacity(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(oil_produced='250'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(OlivePurchase.objects.exists())

    def test_pending_purchase_then_oil_recorded(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(oil_produced=None), format='json')
        self.assertTrue(response.data['is_pending_oil'])
        purchase_id = response.data['id']

        response = self.client.get('/api/v1/olive-purchases/?pending=true')
        self.assertEqual(len(response.data), 1)

        response = self.client.patch(f'/api/v1/olive-purchases/{purchase_id}/', {'oil_produced': '75'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['yield_percentage']), Decimal('15.00'))
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('75.00'))

    def test_update_reduces_stock(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        response = self.client.patch(f"/api/v1/olive-purchases/{response.data['id']}/", {'oil_produced': '40'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('40.00'))

    def test_delete_purchase_removes_oil(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        response = self.client.delete(f"/api/v1/olive-purchases/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('0.00'))

    def test_delete_refused_when_oil_already_sold(self):
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        purchase_id = response.data['id']
        self.client.post('/api/v1/oil-sales/', {
            'safe': self.safe.id, 'buyer_name': 'Client', 'quantity': '50', 'price_per_kg': '15.000'
        }, format='json')

        response = self.client.delete(f'/api/v1/olive-purchases/{purchase_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(OlivePurchase.objects.filter(pk=purchase_id).exists())

    def test_move_purchase(self):
        other = TestDataFactory.create_safe(capacity=Decimal('100.00'))
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        purchase_id = response.data['id']

        response = self.client.patch(f'/api/v1/olive-purchases/{purchase_id}/move/', {'new_safe': other.id},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['safe'], other.id)
        self.safe.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('0.00'))
        self.assertEqual(other.current_stock, Decimal('90.00'))

    def test_move_to_same_safe_rejected(self):
        purchase = TestDataFactory.create_purchase(self.safe)
        response = self.client.patch(f'/api/v1/olive-purchases/{purchase.id}/move/', {'new_safe': self.safe.id},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_over_destination_capacity(self):
        small = TestDataFactory.create_safe(capacity=Decimal('10.00'))
        response = self.client.post('/api/v1/olive-purchases/', self._payload(), format='json')
        response = self.client.patch(f"/api/v1/olive-purchases/{response.data['id']}/move/", {'new_safe': small.id},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('90.00'))

    def test_search_purchases(self):
        TestDataFactory.create_purchase(self.safe, farmer_name='Slim Ayari')
        TestDataFactory.create_purchase(self.safe, farmer_name='Nabil Mejri')
        response = self.client.get('/api/v1/olive-purchases/?search=ayari')
        self.assertEqual(len(response.data), 1)


class OilSaleTests(TestCase):
    """Sales take oil out of a safe"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.safe = TestDataFactory.create_safe(current_stock=Decimal('100.00'))

    def test_create_sale(self):
        data = {'safe': self.safe.id, 'buyer_name': 'Epicerie', 'quantity': '30', 'price_per_kg': '14.500'}
        response = self.client.post('/api/v1/oil-sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('435.000'))
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('70.00'))

    def test_sale_over_stock_rejected(self):
        data = {'safe': self.safe.id, 'buyer_name': 'Epicerie', 'quantity': '130', 'price_per_kg': '14.500'}
        response = self.client.post('/api/v1/oil-sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(OilSale.objects.exists())

    def test_delete_sale_restores_oil(self):
        data = {'safe': self.safe.id, 'buyer_name': 'Epicerie', 'quantity': '30', 'price_per_kg': '14.500'}
        response = self.client.post('/api/v1/oil-sales/', data, format='json')
        response = self.client.delete(f"/api/v1/oil-sales/{response.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.safe.refresh_from_db()
        self.assertEqual(self.safe.current_stock, Decimal('100.00'))
