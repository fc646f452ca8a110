import django_filters
from .models import DailyCollection, CollectorPayment


class DailyCollectionFilter(django_filters.FilterSet):
    """end_date includes the whole day"""
    group = django_filters.NumberFilter(field_name='group_id')
    start_date = django_filters.DateFilter(field_name='collection_date', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='collection_date', lookup_expr='date__lte')

    class Meta:
        model = DailyCollection
        fields = ['group', 'start_date', 'end_date']


class CollectorPaymentFilter(django_filters.FilterSet):
    group = django_filters.NumberFilter(field_name='group_id')
    start_date = django_filters.DateFilter(field_name='payment_date', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='payment_date', lookup_expr='date__lte')

    class Meta:
        model = CollectorPayment
        fields = ['group', 'start_date', 'end_date']
