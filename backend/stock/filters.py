import django_filters
from django.db.models import Q
from .models import OlivePurchase, OilSale


class OlivePurchaseFilter(django_filters.FilterSet):
    safe = django_filters.NumberFilter(field_name='safe_id')
    date_from = django_filters.DateFilter(field_name='purchase_date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='purchase_date', lookup_expr='date__lte')
    pending = django_filters.BooleanFilter(field_name='oil_produced', lookup_expr='isnull')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = OlivePurchase
        fields = ['safe', 'date_from', 'date_to', 'pending', 'search']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(farmer_name__icontains=value) |
            Q(farmer_phone__icontains=value) |
            Q(notes__icontains=value)
        )


class OilSaleFilter(django_filters.FilterSet):
    safe = django_filters.NumberFilter(field_name='safe_id')
    date_from = django_filters.DateFilter(field_name='sale_date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='sale_date', lookup_expr='date__lte')

    class Meta:
        model = OilSale
        fields = ['safe', 'date_from', 'date_to']
