import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from backend.core.cache_signals import trigger_dashboard_update
from backend.core.utils import create_audit_log
from .filters import TransactionFilter
from .models import Transaction
from .serializers import TransactionSerializer, TransactionCreateSerializer
from .utils import ledger_totals

logger = logging.getLogger('backend.finance')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """List ledger transactions with totals, or record a manual debit/credit"""
    if request.method == 'GET':
        queryset = Transaction.objects.select_related('created_by', 'session')
        queryset = TransactionFilter(request.query_params, queryset=queryset).qs
        return Response({
            'results': TransactionSerializer(queryset, many=True).data,
            'totals': ledger_totals(queryset),
        })

    serializer = TransactionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    entry = serializer.save(created_by=request.user)
    create_audit_log(
        request=request,
        action='transaction_create',
        model_name='Transaction',
        object_id=entry.pk,
        object_name=entry.description[:100],
        changes={'type': entry.type, 'amount': str(entry.amount)},
    )
    logger.info(f"{entry.type} of {entry.amount} recorded by {request.user.username}")
    trigger_dashboard_update(f"{entry.type} transaction recorded")
    return Response(TransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve or delete a ledger transaction"""
    entry = get_object_or_404(Transaction.objects.select_related('created_by', 'session'), pk=pk)

    if request.method == 'GET':
        return Response(TransactionSerializer(entry).data)

    if entry.type == 'FARMER_PAYMENT' and entry.session_id:
        return Response({
            'error': 'This payment belongs to a session; cancel it from the session instead'
        }, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='transaction_delete',
        model_name='Transaction',
        object_id=entry.pk,
        object_name=entry.description[:100],
        changes={'type': entry.type, 'amount': str(entry.amount)},
    )
    entry.delete()
    trigger_dashboard_update('Transaction deleted')
    return Response(status=status.HTTP_204_NO_CONTENT)
