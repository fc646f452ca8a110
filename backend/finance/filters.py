import django_filters
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=Transaction.TYPE_CHOICES)
    date = django_filters.DateFilter(field_name='transaction_date', lookup_expr='date')
    date_from = django_filters.DateFilter(field_name='transaction_date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='transaction_date', lookup_expr='date__lte')

    class Meta:
        model = Transaction
        fields = ['type', 'date', 'date_from', 'date_to']
