import logging
from decimal import Decimal
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.db import transaction
from django.db.models import Sum, DecimalField
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.cache_signals import suspend_cache_signals, trigger_dashboard_update
from backend.core.utils import create_audit_log, paginate_queryset, to_bool
from backend.farmers.models import Farmer, Box
from backend.farmers.utils import box_sort_key, release_boxes, update_farmer_totals
from backend.finance.models import Transaction
from .filters import SessionFilter
from .models import ProcessingSession, SessionBox, PaymentTransaction
from .serializers import (
    ProcessingSessionSerializer, SessionCreateSerializer, SessionUpdateSerializer,
    SessionCompleteSerializer, SessionPaymentSerializer, BulkPaymentSerializer,
)
from .utils import (
    PaymentError, combine_session_notes, compute_payment, grouped_session_number, merge_session_boxes,
    next_session_number, payment_status_for, quantize_money,
)

logger = logging.getLogger('backend.processing')

SESSION_SORT_FIELDS = {
    'created_at': 'created_at',
    'processing_date': 'processing_date',
    'total_price': 'total_price',
    'session_number': 'session_number',
}

DETAIL_CONTEXT = {'include_boxes': True, 'include_payments': True}


def _record_farmer_payment(request, session, amount, payment_date, description=None):
    """Mirror a session payment in the cash ledger"""
    return Transaction.objects.create(
        type='FARMER_PAYMENT',
        amount=amount,
        description=description or f"Paiement session {session.session_number}",
        farmer=session.farmer,
        farmer_name=session.farmer.name,
        session=session,
        created_by=request.user if request.user.is_authenticated else None,
        transaction_date=payment_date,
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def session_list_create(request):
    """List sessions or create one from a farmer's boxes in use"""
    if request.method == 'GET':
        queryset = ProcessingSession.objects.select_related('farmer')
        queryset = SessionFilter(request.query_params, queryset=queryset).qs

        sort_by = SESSION_SORT_FIELDS.get(request.query_params.get('sort_by', 'created_at'), 'created_at')
        sort_order = request.query_params.get('sort_order', 'desc')
        queryset = queryset.order_by(f"-{sort_by}" if sort_order == 'desc' else sort_by, '-id')

        include_boxes = to_bool(request.query_params.get('include_boxes'))
        if include_boxes:
            queryset = queryset.prefetch_related('session_boxes')

        context = {'request': request, 'include_boxes': include_boxes}
        return Response(paginate_queryset(
            request, queryset, ProcessingSessionSerializer, context=context,
            max_limit=settings.HUILERIE['MAX_SESSION_PAGE_SIZE'],
        ))

    serializer = SessionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    farmer = Farmer.objects.filter(pk=data['farmer']).first()
    if not farmer:
        return Response({'error': 'Farmer not found'}, status=status.HTTP_404_NOT_FOUND)

    with suspend_cache_signals():
        with transaction.atomic():
            boxes = list(Box.objects.select_for_update().filter(
                pk__in=data['box_ids'],
                current_farmer=farmer,
                status=Box.STATUS_IN_USE,
            ))
            found = {box.id for box in boxes}
            missing = [box_id for box_id in data['box_ids'] if box_id not in found]
            if missing:
                transaction.set_rollback(True)
                return Response({
                    'error': f"Boxes not in use by {farmer.name}: {', '.join(sorted(missing, key=box_sort_key))}",
                    'box_ids': missing,
                }, status=status.HTTP_400_BAD_REQUEST)

            session = ProcessingSession.objects.create(
                session_number=next_session_number(),
                farmer=farmer,
                total_box_weight=data['total_box_weight'],
                box_count=data['box_count'],
                total_price=data.get('total_price'),
                notes=data.get('notes', ''),
            )
            SessionBox.objects.bulk_create([
                SessionBox(session=session, box_id=box.id, box_weight=box.current_weight, box_type=box.type)
                for box in sorted(boxes, key=lambda b: box_sort_key(b.id))
            ])
            release_boxes(found)

            farmer.last_processing_date = timezone.now()
            farmer.save(update_fields=['last_processing_date', 'updated_at'])

    update_farmer_totals(farmer.pk)
    create_audit_log(
        request=request,
        action='session_create',
        model_name='ProcessingSession',
        object_id=session.pk,
        object_name=session.session_number,
        changes={'farmer': farmer.name, 'box_ids': sorted(found, key=box_sort_key)},
    )
    trigger_dashboard_update(f"Session {session.session_number} created for {farmer.name}")

    session = ProcessingSession.objects.select_related('farmer').prefetch_related('session_boxes').get(pk=session.pk)
    return Response(ProcessingSessionSerializer(session, context={'include_boxes': True}).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def session_detail(request, pk):
    """Retrieve, update or delete a session"""
    session = get_object_or_404(
        ProcessingSession.objects.select_related('farmer').prefetch_related('session_boxes', 'payment_transactions'),
        pk=pk,
    )

    if request.method == 'GET':
        return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = SessionUpdateSerializer(data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        previous_payment_status = session.payment_status
        for field in ('oil_weight', 'processing_date', 'notes', 'processing_status'):
            if field in data:
                setattr(session, field, data[field])

        if 'payment_status' in data:
            session.payment_status = data['payment_status']
            if data['payment_status'] == 'paid':
                session.payment_date = session.payment_date or timezone.now()
            elif data['payment_status'] == 'unpaid':
                session.payment_date = None
        session.save()

        if session.payment_status != previous_payment_status:
            update_farmer_totals(session.farmer_id)
        return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)

    # DELETE
    if session.payment_status == 'paid':
        return Response({'error': 'A paid session cannot be deleted'}, status=status.HTTP_400_BAD_REQUEST)

    farmer_id = session.farmer_id
    refund_amount = session.amount_paid
    was_partially_paid = session.payment_status == 'partial'
    session_number = session.session_number
    box_ids = [sb.box_id for sb in session.session_boxes.all()]

    with suspend_cache_signals():
        with transaction.atomic():
            # Boxes from this session that are still held by the farmer go back to the pool
            still_held = Box.objects.filter(pk__in=box_ids, current_farmer_id=farmer_id).values_list('id', flat=True)
            boxes_released = release_boxes(list(still_held))
            Transaction.objects.filter(session=session, type='FARMER_PAYMENT').delete()
            session.delete()

    update_farmer_totals(farmer_id)
    create_audit_log(
        request=request,
        action='session_delete',
        model_name='ProcessingSession',
        object_id=pk,
        object_name=session_number,
        changes={'refund_amount': str(refund_amount), 'boxes_released': boxes_released},
    )
    trigger_dashboard_update(f"Session {session_number} deleted")
    return Response({
        'message': f"Session {session_number} deleted",
        'refund_amount': refund_amount,
        'was_partially_paid': was_partially_paid,
        'boxes_released': boxes_released,
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def session_complete(request, pk):
    """Record the oil obtained; the payment status is left untouched"""
    session = get_object_or_404(ProcessingSession.objects.select_related('farmer'), pk=pk)
    if session.payment_status == 'paid':
        return Response({'error': 'A paid session cannot be modified'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = SessionCompleteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    session.oil_weight = data['oil_weight']
    session.oil_unit = 'kg'
    session.processing_date = data['processing_date']
    session.processing_status = 'processed'
    if data.get('payment_date'):
        session.payment_date = data['payment_date']
    if 'notes' in data:
        session.notes = data['notes']
    session.save()

    return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def session_payment(request, pk):
    """Price a processed session and record a (possibly partial) payment"""
    serializer = SessionPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    with transaction.atomic():
        session = get_object_or_404(ProcessingSession.objects.select_for_update().select_related('farmer'), pk=pk)
        if not session.is_processed:
            return Response({'error': 'The session must be processed before payment'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = compute_payment(session.total_box_weight, data['price_per_kg'], session.amount_paid, data['amount_paid'])
        except PaymentError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        payment_date = data.get('payment_date') or timezone.now()
        amount = quantize_money(data['amount_paid'])
        if amount > 0:
            PaymentTransaction.objects.create(
                session=session,
                amount=amount,
                payment_method=data['payment_method'],
                notes=data.get('notes', ''),
                payment_date=payment_date,
            )
            _record_farmer_payment(request, session, amount, payment_date)

        session.price_per_kg = data['price_per_kg']
        session.total_price = result['total_price']
        session.amount_paid = result['total_paid']
        session.remaining_amount = result['remaining_amount']
        session.payment_status = result['payment_status']
        if result['payment_status'] == 'paid':
            session.payment_date = payment_date
        session.save()

    update_farmer_totals(session.farmer_id)
    create_audit_log(
        request=request,
        action='session_payment',
        model_name='ProcessingSession',
        object_id=session.pk,
        object_name=session.session_number,
        changes={'amount': str(amount), 'price_per_kg': str(data['price_per_kg']), 'status': session.payment_status},
    )
    logger.info(f"Payment of {amount} recorded on {session.session_number} ({session.payment_status})")
    trigger_dashboard_update(f"Payment recorded on {session.session_number}")

    session = ProcessingSession.objects.select_related('farmer').prefetch_related('session_boxes', 'payment_transactions').get(pk=session.pk)
    return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def session_reset(request, pk):
    """Put a session back to pending processing"""
    session = get_object_or_404(ProcessingSession.objects.select_related('farmer'), pk=pk)
    if session.payment_status == 'paid':
        return Response({'error': 'A paid session cannot be reset'}, status=status.HTTP_400_BAD_REQUEST)

    session.processing_status = 'pending'
    session.oil_weight = Decimal('0.00')
    session.processing_date = None
    session.save()
    return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_unpay(request, pk):
    """Cancel every payment of a session"""
    with transaction.atomic():
        session = get_object_or_404(ProcessingSession.objects.select_for_update().select_related('farmer'), pk=pk)
        if session.payment_status == 'unpaid':
            return Response({'error': 'The session is not paid'}, status=status.HTTP_400_BAD_REQUEST)

        payments = session.payment_transactions.all()
        if not payments.exists() or not session.amount_paid:
            return Response({'error': 'No payment to cancel on this session'}, status=status.HTTP_400_BAD_REQUEST)

        cancelled_amount = session.amount_paid
        payments.delete()
        Transaction.objects.filter(session=session, type='FARMER_PAYMENT').delete()

        session.payment_status = 'unpaid'
        session.payment_date = None
        session.amount_paid = Decimal('0.000')
        session.remaining_amount = Decimal('0.000')
        session.price_per_kg = None
        session.total_price = None
        session.save()

    update_farmer_totals(session.farmer_id)
    create_audit_log(
        request=request,
        action='session_unpay',
        model_name='ProcessingSession',
        object_id=session.pk,
        object_name=session.session_number,
        changes={'cancelled_amount': str(cancelled_amount)},
    )
    trigger_dashboard_update(f"Payment cancelled on {session.session_number}")
    return Response(ProcessingSessionSerializer(session, context=DETAIL_CONTEXT).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_bulk_payment(request):
    """Merge several sessions of one farmer into a single grouped session and pay it"""
    serializer = BulkPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    session_ids = data['session_ids']

    with suspend_cache_signals():
        with transaction.atomic():
            sessions = list(
                ProcessingSession.objects.select_for_update()
                .filter(pk__in=session_ids)
                .select_related('farmer')
                .prefetch_related('session_boxes')
                .order_by('created_at', 'id')
            )
            found = {s.pk for s in sessions}
            missing = [sid for sid in session_ids if sid not in found]
            if missing:
                return Response({'error': f"Sessions not found: {missing}"}, status=status.HTTP_404_NOT_FOUND)

            farmer_ids = {s.farmer_id for s in sessions}
            if len(farmer_ids) > 1:
                return Response({'error': 'All sessions must belong to the same farmer'}, status=status.HTTP_400_BAD_REQUEST)
            if any(s.payment_status == 'paid' for s in sessions):
                return Response({'error': 'Paid sessions cannot be grouped'}, status=status.HTTP_400_BAD_REQUEST)
            unprocessed = [s.session_number for s in sessions if not s.is_processed]
            if unprocessed:
                return Response({
                    'error': f"Sessions must be processed before payment: {', '.join(unprocessed)}"
                }, status=status.HTTP_400_BAD_REQUEST)

            farmer = sessions[0].farmer
            merged_boxes = merge_session_boxes(sessions)
            total_box_weight = sum((s.total_box_weight for s in sessions), Decimal('0.00'))
            already_paid = sum((s.amount_paid for s in sessions), Decimal('0.000'))

            try:
                result = compute_payment(total_box_weight, data['price_per_kg'], already_paid, data['amount_paid'])
            except PaymentError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

            payment_date = data.get('payment_date') or timezone.now()
            processing_dates = [s.processing_date for s in sessions if s.processing_date]
            combined = ProcessingSession.objects.create(
                session_number=grouped_session_number(sessions[0].session_number),
                farmer=farmer,
                oil_weight=sum((s.oil_weight for s in sessions), Decimal('0.00')),
                total_box_weight=total_box_weight,
                box_count=len(merged_boxes) or sum(s.box_count for s in sessions),
                total_price=result['total_price'],
                price_per_kg=data['price_per_kg'],
                amount_paid=result['total_paid'],
                remaining_amount=result['remaining_amount'],
                processing_status='processed',
                payment_status=payment_status_for(result['total_price'], result['total_paid']),
                processing_date=max(processing_dates) if processing_dates else timezone.now(),
                payment_date=payment_date if result['payment_status'] == 'paid' else None,
                notes=combine_session_notes(sessions),
            )
            SessionBox.objects.bulk_create([
                SessionBox(session=combined, box_id=b['box_id'], box_weight=b['box_weight'], box_type=b['box_type'])
                for b in merged_boxes
            ])

            # Earlier payments follow the grouped session
            PaymentTransaction.objects.filter(session_id__in=found).update(session=combined)
            Transaction.objects.filter(session_id__in=found).update(session=combined)

            amount = quantize_money(data['amount_paid'])
            if amount > 0:
                PaymentTransaction.objects.create(
                    session=combined,
                    amount=amount,
                    payment_method=data['payment_method'],
                    notes=data.get('notes', ''),
                    payment_date=payment_date,
                )
                _record_farmer_payment(
                    request, combined, amount, payment_date,
                    description=f"Paiement groupé {combined.session_number} ({len(sessions)} sessions)",
                )

            ProcessingSession.objects.filter(pk__in=found).delete()

    update_farmer_totals(farmer.pk)
    create_audit_log(
        request=request,
        action='session_bulk_payment',
        model_name='ProcessingSession',
        object_id=combined.pk,
        object_name=combined.session_number,
        changes={'merged_sessions': [s.session_number for s in sessions], 'amount': str(amount)},
    )
    logger.info(f"{len(sessions)} sessions grouped into {combined.session_number} for {farmer.name}")
    trigger_dashboard_update(f"Grouped payment for {farmer.name}")

    combined = ProcessingSession.objects.select_related('farmer').prefetch_related('session_boxes', 'payment_transactions').get(pk=combined.pk)
    return Response(ProcessingSessionSerializer(combined, context=DETAIL_CONTEXT).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_summary(request):
    """Totals over the filtered sessions (same filters as the list)"""
    queryset = SessionFilter(request.query_params, queryset=ProcessingSession.objects.all()).qs
    totals = queryset.aggregate(
        total_price=Sum('total_price', output_field=DecimalField()),
        amount_paid=Sum('amount_paid', output_field=DecimalField()),
        remaining_amount=Sum('remaining_amount', output_field=DecimalField()),
        oil_weight=Sum('oil_weight', output_field=DecimalField()),
        total_box_weight=Sum('total_box_weight', output_field=DecimalField()),
    )
    return Response({
        'count': queryset.count(),
        **{key: value or Decimal('0') for key, value in totals.items()},
    })
