import django_filters
from django.db.models import Q
from .models import ProcessingSession


class SessionFilter(django_filters.FilterSet):
    """Filter sessions; 'all' disables a status filter and payment 'pending' means not fully paid"""
    farmer = django_filters.NumberFilter(field_name='farmer_id', lookup_expr='exact')
    processing_status = django_filters.CharFilter(method='filter_processing_status')
    payment_status = django_filters.CharFilter(method='filter_payment_status')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = ProcessingSession
        fields = ['farmer', 'processing_status', 'payment_status', 'date_from', 'date_to', 'search']

    def filter_processing_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(processing_status=value)

    def filter_payment_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        if value == 'pending':
            return queryset.filter(payment_status__in=['unpaid', 'partial'])
        return queryset.filter(payment_status=value)

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(session_number__icontains=value) | Q(farmer__name__icontains=value))
