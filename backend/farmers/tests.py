"""
Test suite for the farmers module
Tests: Farmers CRUD, box assignment, box lifecycle, chkara numbering, box id validation
"""
from decimal import Decimal
from io import StringIO
from django.conf import settings
from django.core.management import call_command
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.processing.models import ProcessingSession
from .models import Farmer, Box
from .utils import box_sort_key, next_chkara_number, update_farmer_totals, validate_box_id


class ChkaraNumberingTests(SimpleTestCase):
    """First-gap numbering of chkara sacks"""

    def test_empty_sequence_starts_at_one(self):
        self.assertEqual(next_chkara_number([]), 1)

    def test_contiguous_sequence_appends(self):
        self.assertEqual(next_chkara_number([1, 2, 3]), 4)

    def test_fills_lowest_gap(self):
        self.assertEqual(next_chkara_number([1, 2, 4, 5]), 3)
        self.assertEqual(next_chkara_number([2, 3]), 1)

    def test_duplicates_and_order_ignored(self):
        self.assertEqual(next_chkara_number([3, 1, 1, 2]), 4)

    def test_box_sort_key_orders_numerically(self):
        ids = ['10', 'Chkara2', '2', 'Chkara10', '1']
        self.assertEqual(sorted(ids, key=box_sort_key), ['1', '2', '10', 'Chkara2', 'Chkara10'])


class BoxValidationTests(TestCase):
    """Box id rules per box type"""

    def test_factory_id_in_range_is_valid(self):
        result = validate_box_id('42', 'normal')
        self.assertTrue(result['is_valid'])
        self.assertIsNone(result['error'])

    def test_factory_id_out_of_range(self):
        self.assertFalse(validate_box_id('601', 'normal')['is_valid'])
        self.assertFalse(validate_box_id('0', 'nchira')['is_valid'])
        self.assertFalse(validate_box_id('abc', 'normal')['is_valid'])

    def test_existing_id_rejected_unless_excluded(self):
        TestDataFactory.create_box('7')
        self.assertFalse(validate_box_id('7', 'normal')['is_valid'])
        self.assertTrue(validate_box_id('7', 'normal', exclude_box_id='7')['is_valid'])

    def test_chkara_suggests_next_id(self):
        TestDataFactory.create_box('Chkara1', box_type='chkara')
        result = validate_box_id('', 'chkara')
        self.assertFalse(result['is_valid'])
        self.assertEqual(result['suggested_id'], 'Chkara2')

    def test_chkara_id_format(self):
        self.assertFalse(validate_box_id('Sack1', 'chkara')['is_valid'])
        self.assertTrue(validate_box_id('Chkara5', 'chkara')['is_valid'])


class FarmerTests(TestCase):
    """Test farmer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_authentication(self):
        """Anonymous requests are rejected"""
        self.client.logout()
        response = self.client.get('/api/v1/farmers/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_farmer(self):
        """Test creating a farmer"""
        data = {'name': 'Ali  Ben Salah', 'phone': '98 765 432', 'type': 'large'}
        response = self.client.post('/api/v1/farmers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Ali Ben Salah')
        self.assertEqual(response.data['payment_status'], 'pending')

    def test_suggested_price_follows_farmer_type(self):
        large = TestDataFactory.create_farmer(farmer_type='large')
        priced = TestDataFactory.create_farmer(price_per_kg=Decimal('0.180'))

        response = self.client.get(f'/api/v1/farmers/{large.id}/')
        self.assertEqual(Decimal(response.data['suggested_price_per_kg']), Decimal('0.200'))
        response = self.client.get(f'/api/v1/farmers/{priced.id}/')
        self.assertEqual(Decimal(response.data['suggested_price_per_kg']), Decimal('0.180'))

        with self.settings(HUILERIE={**settings.HUILERIE, 'FARMER_TYPE_PRICES': {'small': '0.12'}}):
            self.assertEqual(priced.suggested_price_per_kg, Decimal('0.180'))
            self.assertIsNone(large.suggested_price_per_kg)

    def test_create_farmer_single_word_name_rejected(self):
        """A farmer needs a first and a last name"""
        response = self.client.post('/api/v1/farmers/', {'name': 'Ali'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_create_farmer_invalid_phone(self):
        response = self.client.post('/api/v1/farmers/', {'name': 'Ali Salah', 'phone': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_farmers_paginated_and_searchable(self):
        """Test listing farmers with search"""
        TestDataFactory.create_farmer(name='Mohamed Trabelsi')
        TestDataFactory.create_farmer(name='Sami Gharbi')
        response = self.client.get('/api/v1/farmers/?search=trabelsi')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Mohamed Trabelsi')
        self.assertIn('total_pages', response.data)

    def test_filter_unpaid_maps_to_pending(self):
        TestDataFactory.create_farmer(name='Paid Farmer', payment_status='paid')
        TestDataFactory.create_farmer(name='Pending Farmer')
        response = self.client.get('/api/v1/farmers/?payment_status=unpaid')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Pending Farmer')

    def test_get_farmer_includes_boxes_and_sessions(self):
        farmer = TestDataFactory.create_farmer()
        TestDataFactory.create_box('3', farmer=farmer)
        TestDataFactory.create_session(farmer)
        response = self.client.get(f'/api/v1/farmers/{farmer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['current_boxes']), 1)
        self.assertEqual(len(response.data['sessions']), 1)

    def test_delete_farmer_releases_boxes_and_removes_sessions(self):
        """Deleting a farmer frees its boxes and deletes its sessions"""
        farmer = TestDataFactory.create_farmer()
        TestDataFactory.create_box('1', farmer=farmer)
        TestDataFactory.create_box('2', farmer=farmer)
        TestDataFactory.create_session(farmer)

        response = self.client.delete(f'/api/v1/farmers/{farmer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sessions_deleted'], 1)
        self.assertEqual(response.data['boxes_released'], 2)
        self.assertFalse(Farmer.objects.filter(pk=farmer.id).exists())
        self.assertEqual(Box.objects.filter(status=Box.STATUS_AVAILABLE).count(), 2)
        self.assertEqual(ProcessingSession.objects.count(), 0)
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Farmer').exists())

    def test_update_farmer_totals(self):
        """Totals follow the sessions' prices and payments"""
        farmer = TestDataFactory.create_farmer()
        TestDataFactory.create_session(farmer, total_price=Decimal('10.000'), amount_paid=Decimal('4.000'))
        farmer = update_farmer_totals(farmer.id)
        self.assertEqual(farmer.total_amount_due, Decimal('10.000'))
        self.assertEqual(farmer.total_amount_paid, Decimal('4.000'))
        self.assertEqual(farmer.payment_status, 'partial')
        self.assertEqual(farmer.remaining_amount, Decimal('6.000'))


class FarmerBoxAssignmentTests(TestCase):
    """Test putting boxes in a farmer's name"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.farmer = TestDataFactory.create_farmer()

    def test_assign_existing_available_box(self):
        TestDataFactory.create_box('5')
        response = self.client.post(
            f'/api/v1/farmers/{self.farmer.id}/boxes/', {'id': '5', 'type': 'normal', 'weight': 30}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        box = Box.objects.get(pk='5')
        self.assertEqual(box.status, Box.STATUS_IN_USE)
        self.assertEqual(box.current_farmer, self.farmer)
        self.assertEqual(box.current_weight, Decimal('30.00'))

    def test_assign_busy_box_rejected(self):
        other = TestDataFactory.create_farmer()
        TestDataFactory.create_box('5', farmer=other)
        response = self.client.post(
            f'/api/v1/farmers/{self.farmer.id}/boxes/', {'id': '5', 'type': 'normal'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Box.objects.get(pk='5').current_farmer, other)

    def test_assign_chkara_numbers_first_gap(self):
        TestDataFactory.create_box('Chkara1', box_type='chkara', farmer=self.farmer)
        TestDataFactory.create_box('Chkara3', box_type='chkara', farmer=self.farmer)
        response = self.client.post(
            f'/api/v1/farmers/{self.farmer.id}/boxes/', {'type': 'chkara', 'weight': 12}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], 'Chkara2')

    def test_bulk_assignment_is_atomic(self):
        """One unavailable box makes the whole request fail"""
        TestDataFactory.create_box('1')
        TestDataFactory.create_box('2', farmer=TestDataFactory.create_farmer())
        data = {'boxes': [{'id': '1', 'type': 'normal'}, {'id': '2', 'type': 'normal'}]}
        response = self.client.post(f'/api/v1/farmers/{self.farmer.id}/boxes/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Box.objects.get(pk='1').status, Box.STATUS_AVAILABLE)

    def test_bulk_assignment(self):
        TestDataFactory.create_box('1')
        TestDataFactory.create_box('2')
        data = {'boxes': [{'id': '1', 'type': 'normal'}, {'id': '2', 'type': 'nchira'}, {'type': 'chkara'}]}
        response = self.client.post(f'/api/v1/farmers/{self.farmer.id}/boxes/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(self.farmer.boxes.count(), 3)
        self.assertEqual(Box.objects.get(pk='2').type, 'nchira')

    def test_bulk_duplicate_ids_rejected(self):
        data = {'boxes': [{'id': '1', 'type': 'normal'}, {'id': '1', 'type': 'normal'}]}
        response = self.client.post(f'/api/v1/farmers/{self.farmer.id}/boxes/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_farmer_boxes(self):
        TestDataFactory.create_box('9', farmer=self.farmer)
        response = self.client.get(f'/api/v1/farmers/{self.farmer.id}/boxes/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data], ['9'])


class BoxTests(TestCase):
    """Test box endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.farmer = TestDataFactory.create_farmer()

    def test_list_boxes_sorted_numerically(self):
        for box_id in ('10', '2', '1'):
            TestDataFactory.create_box(box_id)
        response = self.client.get('/api/v1/boxes/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data['results']], ['1', '2', '10'])

    def test_filter_boxes_by_status(self):
        TestDataFactory.create_box('1')
        TestDataFactory.create_box('2', farmer=self.farmer)
        response = self.client.get('/api/v1/boxes/?status=in_use')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], '2')

    def test_available_boxes_exclude_chkara(self):
        TestDataFactory.create_box('1')
        Box.objects.create(id='Chkara1', type='chkara')
        response = self.client.get('/api/v1/boxes/available/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data['results']], ['1'])

    def test_assign_and_release_box(self):
        TestDataFactory.create_box('4')
        response = self.client.post('/api/v1/boxes/4/', {'farmer': self.farmer.id, 'weight': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Box.STATUS_IN_USE)

        response = self.client.post('/api/v1/boxes/4/', {'farmer': self.farmer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete('/api/v1/boxes/4/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Box.STATUS_AVAILABLE)
        self.assertIsNone(response.data['current_farmer'])

    def test_release_available_box_rejected(self):
        TestDataFactory.create_box('4')
        response = self.client.delete('/api/v1/boxes/4/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_unknown_farmer(self):
        TestDataFactory.create_box('4')
        response = self.client.post('/api/v1/boxes/4/', {'farmer': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_box_id(self):
        """Changing the id of a box in use moves the assignment"""
        TestDataFactory.create_box('4', farmer=self.farmer)
        TestDataFactory.create_box('8')
        response = self.client.put('/api/v1/boxes/4/', {'new_id': '8', 'weight': 18}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], '8')
        box = Box.objects.get(pk='8')
        self.assertEqual(box.current_farmer, self.farmer)
        self.assertEqual(box.current_weight, Decimal('18.00'))
        self.assertFalse(Box.objects.filter(pk='4').exists())

    def test_update_box_id_to_busy_box_rejected(self):
        TestDataFactory.create_box('4', farmer=self.farmer)
        TestDataFactory.create_box('8', farmer=TestDataFactory.create_farmer())
        response = self.client.put('/api/v1/boxes/4/', {'new_id': '8'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_select(self):
        TestDataFactory.create_box('1')
        TestDataFactory.create_box('2')
        response = self.client.put('/api/v1/boxes/', {'box_ids': ['1', '2'], 'action': 'select'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Box.objects.filter(is_selected=True).count(), 2)

    def test_bulk_delete_refused_for_boxes_in_use(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        response = self.client.put('/api/v1/boxes/', {'box_ids': ['1'], 'action': 'delete'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_delete_removes_available_chkara(self):
        TestDataFactory.create_box('1')
        Box.objects.create(id='Chkara1', type='chkara')
        response = self.client.put('/api/v1/boxes/', {'box_ids': ['1', 'Chkara1'], 'action': 'delete'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Box.objects.filter(pk='Chkara1').exists())
        self.assertTrue(Box.objects.filter(pk='1').exists())

    def test_reset_releases_every_box(self):
        TestDataFactory.create_box('1', farmer=self.farmer)
        TestDataFactory.create_box('Chkara1', box_type='chkara', farmer=self.farmer)
        response = self.client.post('/api/v1/boxes/reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reset_count'], 2)
        self.assertFalse(Box.objects.filter(status=Box.STATUS_IN_USE).exists())
        self.assertTrue(AuditLog.objects.filter(action='box_reset').exists())

    def test_next_chkara_id(self):
        Box.objects.create(id='Chkara1', type='chkara')
        response = self.client.get('/api/v1/boxes/next-chkara-id/')
        self.assertEqual(response.data['next_id'], 'Chkara2')

    def test_validate_endpoint(self):
        response = self.client.post('/api/v1/boxes/validate/', {'id': '700', 'type': 'normal'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_valid'])

    @override_settings(HUILERIE={**settings.HUILERIE, 'MAX_BOX_ID': 20})
    def test_max_box_id_setting(self):
        self.assertFalse(validate_box_id('21', 'normal')['is_valid'])
        self.assertTrue(validate_box_id('20', 'normal')['is_valid'])


@override_settings(HUILERIE={**settings.HUILERIE, 'MAX_BOX_ID': 25})
class InitializeFactoryBoxesTests(TestCase):

    def test_creates_missing_boxes_only(self):
        farmer = TestDataFactory.create_farmer()
        TestDataFactory.create_box('3', farmer=farmer)

        call_command('initialize_factory_boxes', batch_size=10, stdout=StringIO())
        self.assertEqual(Box.objects.count(), 25)
        self.assertEqual(Box.objects.get(pk='3').current_farmer, farmer)

        call_command('initialize_factory_boxes', stdout=StringIO())
        self.assertEqual(Box.objects.count(), 25)
