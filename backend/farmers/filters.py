import django_filters
from django.db.models import Q
from .models import Farmer, Box


class FarmerFilter(django_filters.FilterSet):
    """Filter farmers by free text, type and payment status ('all' disables a filter)"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.CharFilter(method='filter_type', label='Type')
    payment_status = django_filters.CharFilter(method='filter_payment_status', label='Payment status')

    class Meta:
        model = Farmer
        fields = ['search', 'type', 'payment_status']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(nickname__icontains=value) |
            Q(phone__icontains=value)
        )

    def filter_type(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(type=value)

    def filter_payment_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        # 'unpaid' is accepted as an alias of 'pending'
        if value == 'unpaid':
            value = 'pending'
        return queryset.filter(payment_status=value)


class BoxFilter(django_filters.FilterSet):
    farmer = django_filters.NumberFilter(field_name='current_farmer_id', lookup_expr='exact')
    type = django_filters.CharFilter(method='filter_type', label='Type')
    status = django_filters.CharFilter(method='filter_status', label='Status')
    is_selected = django_filters.BooleanFilter(field_name='is_selected')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Box
        fields = ['farmer', 'type', 'status', 'is_selected', 'search']

    def filter_type(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(type=value.lower())

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value.upper())

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(id__icontains=value) | Q(current_farmer__name__icontains=value))
