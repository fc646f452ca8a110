import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, Prefetch
from django.shortcuts import get_object_or_404

from backend.core.utils import create_audit_log
from .filters import DailyCollectionFilter, CollectorPaymentFilter
from .models import CollectorGroup, DailyCollection, CollectorPayment
from .serializers import CollectorGroupSerializer, DailyCollectionSerializer, CollectorPaymentSerializer
from .units import normalize_quantities

logger = logging.getLogger('backend.collectors')


# Collector group views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def collector_group_list_create(request):
    """List collector groups with their latest collections, or create a group"""
    if request.method == 'GET':
        groups = CollectorGroup.objects.prefetch_related(
            Prefetch('collections', queryset=DailyCollection.objects.select_related('group'))
        ).order_by('name')
        return Response(CollectorGroupSerializer(groups, many=True).data)

    serializer = CollectorGroupSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    group = serializer.save()
    create_audit_log(request=request, action='create', model_name='CollectorGroup',
                     object_id=group.pk, object_name=group.name)
    return Response(CollectorGroupSerializer(group).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def collector_group_detail(request, pk):
    """Retrieve, update or delete a collector group"""
    group = get_object_or_404(CollectorGroup, pk=pk)

    if request.method == 'GET':
        return Response(CollectorGroupSerializer(group).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = CollectorGroupSerializer(group, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)

    create_audit_log(request=request, action='delete', model_name='CollectorGroup',
                     object_id=group.pk, object_name=group.name)
    group.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def collector_group_summary(request, pk):
    """Collected quantities, amounts and payments of a group over an optional date range"""
    group = get_object_or_404(CollectorGroup, pk=pk)

    collections = DailyCollectionFilter(request.query_params, queryset=group.collections.all()).qs
    payments = CollectorPaymentFilter(request.query_params, queryset=group.payments.all()).qs

    totals = collections.aggregate(
        collection_count=Count('id'),
        chakra=Sum('chakra_count'),
        galba=Sum('galba_count'),
        nchira_chakra=Sum('nchira_chakra_count'),
        nchira_galba=Sum('nchira_galba_count'),
        total_chakra=Sum('total_chakra'),
        total_amount=Sum('total_amount'),
    )
    total_paid = payments.aggregate(total=Sum('amount'))['total'] or Decimal('0.000')

    # Summed galba can again exceed 5
    chakra, galba = normalize_quantities(totals['chakra'], totals['galba'])
    nchira_chakra, nchira_galba = normalize_quantities(totals['nchira_chakra'], totals['nchira_galba'])
    total_amount = totals['total_amount'] or Decimal('0.000')

    return Response({
        'group': {'id': group.id, 'name': group.name, 'is_active': group.is_active},
        'start_date': request.query_params.get('start_date'),
        'end_date': request.query_params.get('end_date'),
        'collection_count': totals['collection_count'],
        'chakra_count': chakra,
        'galba_count': galba,
        'nchira_chakra_count': nchira_chakra,
        'nchira_galba_count': nchira_galba,
        'total_chakra': totals['total_chakra'] or Decimal('0.00'),
        'total_amount': total_amount,
        'total_paid': total_paid,
        'balance': total_amount - total_paid,
    })


# Daily collection views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def collection_list_create(request):
    """List daily collections (group / date range filters) or record one"""
    if request.method == 'GET':
        queryset = DailyCollection.objects.select_related('group')
        queryset = DailyCollectionFilter(request.query_params, queryset=queryset).qs
        return Response(DailyCollectionSerializer(queryset, many=True).data)

    serializer = DailyCollectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    collection = serializer.save()
    logger.info(f"Collection of {collection.total_chakra} chakra recorded for {collection.group.name}")
    return Response(DailyCollectionSerializer(collection).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def collection_detail(request, pk):
    """Retrieve, update or delete a daily collection"""
    collection = get_object_or_404(DailyCollection.objects.select_related('group'), pk=pk)

    if request.method == 'GET':
        return Response(DailyCollectionSerializer(collection).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = DailyCollectionSerializer(collection, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)

    collection.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Collector payment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def collector_payment_list_create(request):
    """List payments made to collector groups or record one"""
    if request.method == 'GET':
        queryset = CollectorPayment.objects.select_related('group')
        queryset = CollectorPaymentFilter(request.query_params, queryset=queryset).qs
        return Response(CollectorPaymentSerializer(queryset, many=True).data)

    serializer = CollectorPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    payment = serializer.save()
    create_audit_log(request=request, action='create', model_name='CollectorPayment',
                     object_id=payment.pk, object_name=payment.group.name,
                     changes={'amount': str(payment.amount)})
    return Response(CollectorPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def collector_payment_detail(request, pk):
    payment = get_object_or_404(CollectorPayment.objects.select_related('group'), pk=pk)
    create_audit_log(request=request, action='delete', model_name='CollectorPayment',
                     object_id=payment.pk, object_name=payment.group.name,
                     changes={'amount': str(payment.amount)})
    payment.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
