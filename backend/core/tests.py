"""
Test suite for the core module
Tests: JWT auth, users, audit logs, health check, global search, management commands
"""
from decimal import Decimal
from io import StringIO
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group, Permission
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from backend.collectors.models import DailyCollection
from backend.farmers.models import Farmer, Box
from backend.finance.models import Transaction
from backend.processing.models import ProcessingSession
from .models import AuditLog
from .test_utils import TestDataFactory, AuthenticatedAPIClient
from .utils import create_audit_log

User = get_user_model()


class AuthTests(TestCase):
    """Test JWT login, refresh and current user"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='operateur', password='Huile2024!x')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'operateur', 'password': 'Huile2024!x'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'operateur', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_includes_groups(self):
        group = Group.objects.create(name='Admin')
        self.user.groups.add(group)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['groups'], ['Admin'])
        self.assertTrue(response.data['is_admin'])


class UserTests(TestCase):
    """User management is reserved to staff"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_user(self):
        data = {'username': 'nouveau', 'password': 'Huile2024!x', 'password_confirm': 'Huile2024!x'}
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)

    def test_password_mismatch(self):
        data = {'username': 'nouveau', 'password': 'Huile2024!x', 'password_confirm': 'Huile2024!y'}
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_staff_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_group_member_manages_users(self):
        member = TestDataFactory.create_user()
        member.groups.add(Group.objects.create(name='Admin'))
        self.client.authenticate_user(member)

        response = self.client.get('/api/v1/auth/me/')
        self.assertTrue(response.data['is_admin'])
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuditLogTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(user=self.user, action='create', model_name='Farmer'))
        self.assertFalse(AuditLog.objects.exists())

    def test_users_only_see_their_own_logs(self):
        create_audit_log(user=self.user, action='create', model_name='Farmer', object_id=1)
        create_audit_log(user=self.other, action='delete', model_name='Farmer', object_id=2)

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'create')

    def test_admin_group_member_sees_every_log(self):
        self.user.groups.add(Group.objects.create(name='Admin'))
        create_audit_log(user=self.user, action='create', model_name='Farmer', object_id=1)
        log = create_audit_log(user=self.other, action='delete', model_name='Farmer', object_id=2)

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_detail_of_another_user_forbidden(self):
        log = create_audit_log(user=self.other, action='delete', model_name='Farmer', object_id=2)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class HealthAndSearchTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_health_check_is_public(self):
        self.client.logout()
        response = self.client.get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')

    def test_empty_search(self):
        response = self.client.get('/api/v1/search/?q=')
        self.assertEqual(response.data['farmers'], [])
        self.assertEqual(response.data['collector_groups'], [])

    def test_search_across_models(self):
        farmer = TestDataFactory.create_farmer(name='Hamadi Zitouni')
        TestDataFactory.create_session(farmer)
        TestDataFactory.create_employee(name='Zitouna Presse')
        TestDataFactory.create_collector_group(name='Groupe Zitoun')

        response = self.client.get('/api/v1/search/?q=zitoun')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['farmers']), 1)
        self.assertEqual(len(response.data['sessions']), 1)
        self.assertEqual(len(response.data['employees']), 1)
        self.assertEqual(len(response.data['collector_groups']), 1)
        self.assertIsNone(response.data['collector_groups'][0]['recent_collections'])

    def test_search_box_by_exact_id(self):
        TestDataFactory.create_box('12')
        TestDataFactory.create_box('120')
        response = self.client.get('/api/v1/search/?q=12')
        self.assertEqual([b['id'] for b in response.data['boxes']], ['12'])


class ManagementCommandTests(TestCase):

    def test_create_admin_user(self):
        call_command('create_admin_user', username='chef', password='Huile2024!x', stdout=StringIO())
        user = User.objects.get(username='chef')
        self.assertTrue(user.is_superuser)
        self.assertTrue(user.groups.filter(name='Admin').exists())

        call_command('create_admin_user', username='chef', password='Nouveau2024!x', reset_password=True,
                     stdout=StringIO())
        user.refresh_from_db()
        self.assertTrue(user.check_password('Nouveau2024!x'))
        self.assertEqual(User.objects.filter(username='chef').count(), 1)


    def test_create_user_groups(self):
        call_command('create_user_groups', stdout=StringIO())
        admin = Group.objects.get(name='Admin')
        operator = Group.objects.get(name='Operator')
        self.assertEqual(admin.permissions.count(), Permission.objects.count())
        self.assertTrue(operator.permissions.filter(codename='add_farmer').exists())
        self.assertFalse(operator.permissions.filter(codename='add_user').exists())

        # Running twice keeps the groups
        call_command('create_user_groups', stdout=StringIO())
        self.assertEqual(Group.objects.count(), 2)

    def test_clear_data(self):
        farmer = TestDataFactory.create_farmer(total_amount_due=Decimal('10.000'))
        TestDataFactory.create_box('1', farmer=farmer)
        TestDataFactory.create_box('Chkara1', box_type='chkara', farmer=farmer)
        session = TestDataFactory.create_session(farmer)
        Transaction.objects.create(type='FARMER_PAYMENT', amount=Decimal('5.000'), description='p', session=session)
        TestDataFactory.create_collection(TestDataFactory.create_collector_group())

        call_command('clear_data', confirm=True, stdout=StringIO())

        self.assertFalse(ProcessingSession.objects.exists())
        self.assertFalse(Transaction.objects.exists())
        self.assertFalse(DailyCollection.objects.exists())
        self.assertFalse(Box.objects.filter(pk='Chkara1').exists())
        self.assertEqual(Box.objects.get(pk='1').status, Box.STATUS_AVAILABLE)
        farmer = Farmer.objects.get(pk=farmer.pk)
        self.assertEqual(farmer.total_amount_due, Decimal('0.000'))
