import logging
from decimal import Decimal, ROUND_HALF_UP
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.utils import create_audit_log
from .filters import OlivePurchaseFilter, OilSaleFilter
from .models import OilSafe, OlivePurchase, OilSale
from .serializers import (
    OilSafeSerializer, OlivePurchaseSerializer, OlivePurchaseWriteSerializer,
    PurchaseMoveSerializer, OilSaleSerializer,
)
from .utils import StockError, add_oil, adjust_oil, purchase_totals, remove_oil

logger = logging.getLogger('backend.stock')


def _safe_queryset():
    return OilSafe.objects.annotate(
        purchase_count=Count('purchases', distinct=True),
        sale_count=Count('sales', distinct=True),
        pending_oil_count=Count('purchases', filter=Q(purchases__oil_produced__isnull=True), distinct=True),
    )


# Safe views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def safe_list_create(request):
    """List oil safes with their history counts, or create a safe"""
    if request.method == 'GET':
        safes = _safe_queryset().order_by('name')
        return Response(OilSafeSerializer(safes, many=True).data)

    serializer = OilSafeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    safe = serializer.save()
    create_audit_log(request=request, action='create', model_name='OilSafe',
                     object_id=safe.pk, object_name=safe.name)
    return Response(OilSafeSerializer(safe).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def safe_detail(request, pk):
    """Retrieve (with purchases and sales), update or delete a safe"""
    safe = get_object_or_404(_safe_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(OilSafeSerializer(safe, context={'include_history': True}).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = OilSafeSerializer(safe, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)

    if safe.current_stock > 0:
        return Response({
            'error': f"Cannot delete a safe holding oil ({safe.current_stock} kg)"
        }, status=status.HTTP_400_BAD_REQUEST)
    if safe.purchase_count or safe.sale_count:
        return Response({
            'error': 'Cannot delete a safe with purchase or sale history'
        }, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='delete', model_name='OilSafe',
                     object_id=safe.pk, object_name=safe.name)
    safe.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Olive purchase views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_list_create(request):
    """List olive purchases or record one (adding its oil to the safe)"""
    if request.method == 'GET':
        queryset = OlivePurchase.objects.select_related('safe')
        queryset = OlivePurchaseFilter(request.query_params, queryset=queryset).qs
        return Response(OlivePurchaseSerializer(queryset, many=True).data)

    serializer = OlivePurchaseWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    if not data.get('safe'):
        return Response({'safe': ['Please select a safe']}, status=status.HTTP_400_BAD_REQUEST)

    total_cost, yield_percentage = purchase_totals(
        data['olive_weight'], data['price_per_kg'], data.get('oil_produced'), data['is_base_purchase']
    )

    try:
        with transaction.atomic():
            safe = OilSafe.objects.select_for_update().filter(pk=data['safe']).first()
            if not safe:
                return Response({'error': 'Safe not found'}, status=status.HTTP_404_NOT_FOUND)

            purchase = OlivePurchase.objects.create(
                safe=safe,
                purchase_date=data.get('purchase_date') or timezone.now(),
                farmer_name=data['farmer_name'],
                farmer_phone=data.get('farmer_phone'),
                olive_weight=data['olive_weight'],
                price_per_kg=data['price_per_kg'],
                total_cost=total_cost,
                oil_produced=data.get('oil_produced'),
                yield_percentage=yield_percentage,
                is_base_purchase=data['is_base_purchase'],
                notes=data.get('notes'),
            )
            add_oil(safe, purchase.oil_produced)
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request, action='create', model_name='OlivePurchase',
        object_id=purchase.pk, object_name=purchase.farmer_name,
        changes={'safe': safe.name, 'oil_produced': str(purchase.oil_produced or 0)},
    )
    logger.info(f"Purchase from {purchase.farmer_name} recorded into {safe.name}")
    return Response(OlivePurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_detail(request, pk):
    """Retrieve, update (re-syncing the safe stock) or delete a purchase"""
    if request.method == 'GET':
        purchase = get_object_or_404(OlivePurchase.objects.select_related('safe'), pk=pk)
        return Response(OlivePurchaseSerializer(purchase).data)

    if request.method in ('PUT', 'PATCH'):
        purchase = get_object_or_404(OlivePurchase, pk=pk)
        serializer = OlivePurchaseWriteSerializer(data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            with transaction.atomic():
                purchase = OlivePurchase.objects.select_for_update().get(pk=purchase.pk)
                safe = OilSafe.objects.select_for_update().get(pk=purchase.safe_id)
                old_oil = purchase.oil_produced

                for field in ('purchase_date', 'farmer_name', 'farmer_phone', 'olive_weight',
                              'price_per_kg', 'oil_produced', 'is_base_purchase', 'notes'):
                    if field in data:
                        setattr(purchase, field, data[field])
                purchase.total_cost, purchase.yield_percentage = purchase_totals(
                    purchase.olive_weight, purchase.price_per_kg, purchase.oil_produced, purchase.is_base_purchase
                )
                adjust_oil(safe, old_oil, purchase.oil_produced)
                purchase.save()
        except StockError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        purchase.safe = safe
        return Response(OlivePurchaseSerializer(purchase).data)

    # DELETE
    try:
        with transaction.atomic():
            purchase = get_object_or_404(OlivePurchase.objects.select_for_update(), pk=pk)
            safe = OilSafe.objects.select_for_update().get(pk=purchase.safe_id)
            remove_oil(safe, purchase.oil_produced)
            purchase.delete()
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request, action='delete', model_name='OlivePurchase',
        object_id=pk, object_name=purchase.farmer_name,
        changes={'safe': safe.name, 'oil_removed': str(purchase.oil_produced or 0)},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def purchase_move(request, pk):
    """Move a purchase and its oil to another safe"""
    serializer = PurchaseMoveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_safe_id = serializer.validated_data['new_safe']

    try:
        with transaction.atomic():
            purchase = get_object_or_404(OlivePurchase.objects.select_for_update(), pk=pk)
            if purchase.safe_id == new_safe_id:
                return Response({'error': 'The purchase is already in this safe'}, status=status.HTTP_400_BAD_REQUEST)

            # Lock both safes in id order
            safes = {s.pk: s for s in OilSafe.objects.select_for_update()
                     .filter(pk__in=[purchase.safe_id, new_safe_id]).order_by('pk')}
            if new_safe_id not in safes:
                return Response({'error': 'Destination safe not found'}, status=status.HTTP_404_NOT_FOUND)
            old_safe, new_safe = safes[purchase.safe_id], safes[new_safe_id]

            add_oil(new_safe, purchase.oil_produced)
            remove_oil(old_safe, purchase.oil_produced)
            purchase.safe = new_safe
            purchase.save(update_fields=['safe', 'updated_at'])
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request, action='stock_move', model_name='OlivePurchase',
        object_id=purchase.pk, object_name=purchase.farmer_name,
        changes={'from': old_safe.name, 'to': new_safe.name, 'oil': str(purchase.oil_produced or 0)},
    )
    logger.info(f"Purchase {purchase.pk} moved from {old_safe.name} to {new_safe.name}")
    return Response(OlivePurchaseSerializer(purchase).data)


# Oil sale views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sale_list_create(request):
    """List oil sales or record one (taking the oil out of the safe)"""
    if request.method == 'GET':
        queryset = OilSale.objects.select_related('safe')
        queryset = OilSaleFilter(request.query_params, queryset=queryset).qs
        return Response(OilSaleSerializer(queryset, many=True).data)

    serializer = OilSaleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    total_revenue = (data['quantity'] * data['price_per_kg']).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)
    try:
        with transaction.atomic():
            safe = OilSafe.objects.select_for_update().get(pk=data['safe'].pk)
            remove_oil(safe, data['quantity'])
            sale = serializer.save(safe=safe, total_revenue=total_revenue)
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request, action='create', model_name='OilSale',
        object_id=sale.pk, object_name=sale.buyer_name,
        changes={'safe': safe.name, 'quantity': str(sale.quantity)},
    )
    return Response(OilSaleSerializer(sale).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def sale_detail(request, pk):
    try:
        with transaction.atomic():
            sale = get_object_or_404(OilSale.objects.select_for_update(), pk=pk)
            safe = OilSafe.objects.select_for_update().get(pk=sale.safe_id)
            add_oil(safe, sale.quantity)
            sale.delete()
    except StockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='delete', model_name='OilSale',
                     object_id=pk, object_name=sale.buyer_name, changes={'quantity': str(sale.quantity)})
    return Response(status=status.HTTP_204_NO_CONTENT)
