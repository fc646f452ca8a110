from decimal import Decimal
from django.db.models import Sum, DecimalField


def ledger_totals(queryset):
    """
    Totals by transaction type over a ledger queryset.
    Credits are reported as a positive amount; net revenue subtracts them.
    """
    def total(type_):
        value = queryset.filter(type=type_).aggregate(
            total=Sum('amount', output_field=DecimalField())
        )['total']
        return value or Decimal('0.000')

    farmer_payments = total('FARMER_PAYMENT')
    debits = total('DEBIT')
    credits = abs(total('CREDIT'))
    return {
        'farmer_payments': farmer_payments,
        'debits': debits,
        'credits': credits,
        'net_revenue': farmer_payments + debits - credits,
    }
