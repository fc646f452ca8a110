"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.collectors.models import CollectorGroup, DailyCollection
from backend.collectors.units import apply_collection_totals
from backend.employees.models import Employee
from backend.farmers.models import Farmer, Box
from backend.processing.models import ProcessingSession, SessionBox
from backend.stock.models import OilSafe, OlivePurchase
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_farmer(name=None, farmer_type='small', phone='20123456', **kwargs):
        """Create a test farmer (names need two words)"""
        if not name:
            name = f'Farmer {TestDataFactory.random_string(6)}'
        return Farmer.objects.create(name=name, type=farmer_type, phone=phone, **kwargs)

    @staticmethod
    def create_box(box_id='1', box_type='normal', farmer=None, weight=None):
        """Create a box, assigned to `farmer` when given"""
        box = Box.objects.create(id=box_id, type=box_type)
        if farmer:
            box.assign(farmer, weight=Decimal(weight if weight is not None else '25.00'))
            box.save()
        return box

    @staticmethod
    def create_session(farmer, box_ids=('1',), box_weight=Decimal('25.00'), session_number=None,
                       processed=False, oil_weight=Decimal('0.00'), **kwargs):
        """Create a session with box snapshots (boxes are not touched)"""
        if not session_number:
            session_number = f'S#{ProcessingSession.objects.count() + 1}'
        session = ProcessingSession.objects.create(
            session_number=session_number,
            farmer=farmer,
            total_box_weight=box_weight * len(box_ids),
            box_count=len(box_ids),
            oil_weight=oil_weight,
            processing_status='processed' if processed else 'pending',
            processing_date=timezone.now() if processed else None,
            **kwargs
        )
        for box_id in box_ids:
            SessionBox.objects.create(session=session, box_id=box_id, box_weight=box_weight, box_type='normal')
        return session

    @staticmethod
    def create_collector_group(name=None, is_active=True):
        """Create a collector group"""
        if not name:
            name = f'Groupe {TestDataFactory.random_string(6)}'
        return CollectorGroup.objects.create(name=name, is_active=is_active)

    @staticmethod
    def create_collection(group, chakra=3, galba=2, price=Decimal('10.000'), **kwargs):
        """Create a daily collection with totals computed"""
        collection = DailyCollection(
            group=group,
            collection_date=kwargs.pop('collection_date', timezone.now()),
            location=kwargs.pop('location', 'Ksour Essef'),
            client_name=kwargs.pop('client_name', 'Client Test'),
            chakra_count=chakra,
            galba_count=galba,
            price_per_chakra=price,
            **kwargs
        )
        apply_collection_totals(collection)
        collection.save()
        return collection

    @staticmethod
    def create_employee(name=None, position='Ouvrier', **kwargs):
        """Create an employee"""
        if not name:
            name = f'Employee {TestDataFactory.random_string(6)}'
        return Employee.objects.create(name=name, position=position, **kwargs)

    @staticmethod
    def create_safe(name=None, capacity=Decimal('1000.00'), current_stock=Decimal('0.00')):
        """Create an oil safe"""
        if not name:
            name = f'Coffre {TestDataFactory.random_string(6)}'
        return OilSafe.objects.create(name=name, capacity=capacity, current_stock=current_stock)

    @staticmethod
    def create_purchase(safe, olive_weight=Decimal('100.00'), price_per_kg=Decimal('1.500'),
                        oil_produced=None, farmer_name='Fournisseur Test'):
        """Create a purchase row (safe stock is not adjusted)"""
        yield_percentage = None
        if oil_produced:
            yield_percentage = (Decimal(oil_produced) / olive_weight * 100).quantize(Decimal('0.01'))
        return OlivePurchase.objects.create(
            safe=safe,
            farmer_name=farmer_name,
            olive_weight=olive_weight,
            price_per_kg=price_per_kg,
            total_cost=olive_weight * price_per_kg,
            oil_produced=oil_produced,
            yield_percentage=yield_percentage,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
