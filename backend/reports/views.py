import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, Avg, Q, DecimalField
from django.utils import timezone
from datetime import datetime, time, timedelta
from decimal import Decimal

from backend.core.cache_utils import (
    get_cached_dashboard, cache_dashboard, DASHBOARD_CACHE_TTL, DASHBOARD_STATS_CACHE_TTL,
)
from backend.core.utils import to_bool
from backend.farmers.models import Farmer, Box
from backend.farmers.utils import factory_box_ids, get_max_box_id
from backend.processing.models import ProcessingSession

logger = logging.getLogger('backend.reports')

REVENUE_STATUSES = ['paid', 'partial']


def _revenue(queryset):
    """Amount actually received (partial payments included)"""
    return queryset.filter(payment_status__in=REVENUE_STATUSES).aggregate(
        total=Sum('amount_paid', output_field=DecimalField())
    )['total'] or Decimal('0.000')


def _day_bounds(day):
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def _sessions_on(day):
    start, end = _day_bounds(day)
    return ProcessingSession.objects.filter(created_at__gte=start, created_at__lt=end)


def _farmers_added_on(day):
    start, end = _day_bounds(day)
    return Farmer.objects.filter(created_at__gte=start, created_at__lt=end)


def _factory_box_counts():
    """(available, in use) among the numbered factory boxes"""
    counts = Box.objects.filter(pk__in=factory_box_ids()).exclude(type='chkara').aggregate(
        available=Count('id', filter=Q(status=Box.STATUS_AVAILABLE)),
        in_use=Count('id', filter=Q(status=Box.STATUS_IN_USE)),
    )
    return counts['available'], counts['in_use']


def _recent_activity(limit=10):
    activity = []

    sessions = ProcessingSession.objects.select_related('farmer').prefetch_related('session_boxes')[:5]
    for session in sessions:
        processed = session.processing_status == 'processed'
        activity.append({
            'id': f"session-{session.id}",
            'type': 'session_completed' if processed else 'session_created',
            'description': (
                f"Traitement terminé pour {session.farmer.name}" if processed
                else f"Session créée pour {session.farmer.name} ({session.box_count} boîtes)"
            ),
            'timestamp': session.created_at,
            'amount': session.total_price if processed else None,
            'metadata': {
                'farmer_id': session.farmer_id,
                'session_id': session.id,
                'box_count': session.box_count,
                'box_ids': [sb.box_id for sb in session.session_boxes.all()],
            },
        })

    for farmer in Farmer.objects.order_by('-created_at')[:3]:
        activity.append({
            'id': f"farmer-{farmer.id}",
            'type': 'farmer_added',
            'description': f"Agriculteur ajouté: {farmer.name}",
            'timestamp': farmer.created_at,
            'amount': None,
            'metadata': {'farmer_id': farmer.id, 'farmer_type': farmer.type},
        })

    paid_sessions = ProcessingSession.objects.select_related('farmer').filter(
        payment_status='paid', payment_date__isnull=False
    ).order_by('-payment_date')[:3]
    for session in paid_sessions:
        activity.append({
            'id': f"payment-{session.id}",
            'type': 'payment_received',
            'description': f"Paiement reçu de {session.farmer.name}",
            'timestamp': session.payment_date,
            'amount': session.total_price,
            'metadata': {'farmer_id': session.farmer_id, 'session_id': session.id},
        })

    activity.sort(key=lambda item: item['timestamp'], reverse=True)
    return activity[:limit]


def build_dashboard_metrics():
    today = timezone.localdate()
    yesterday = today - timedelta(days=1)
    total_boxes = get_max_box_id()

    available_boxes, in_use_boxes = _factory_box_counts()
    sessions = ProcessingSession.objects.all()

    today_revenue = _revenue(_sessions_on(today))
    yesterday_revenue = _revenue(_sessions_on(yesterday))
    average_oil = sessions.filter(processing_status='processed', oil_weight__gt=0).aggregate(
        avg=Avg('oil_weight', output_field=DecimalField())
    )['avg'] or Decimal('0.00')

    status_counts = sessions.aggregate(
        pending=Count('id', filter=Q(processing_status='pending')),
        processed=Count('id', filter=Q(processing_status='processed')),
        paid=Count('id', filter=Q(payment_status='paid')),
        unpaid_processed=Count('id', filter=Q(processing_status='processed', payment_status='unpaid')),
    )

    return {
        'metrics': {
            'total_farmers': Farmer.objects.count(),
            'total_boxes': total_boxes,
            'active_boxes': available_boxes,
            'pending_extractions': status_counts['pending'],
            'today_revenue': today_revenue,
            'total_revenue': _revenue(sessions),
            'average_oil_extraction': Decimal(average_oil).quantize(Decimal('0.01')),
            'chkara_count': Box.objects.filter(type='chkara', status=Box.STATUS_IN_USE).count(),
            'metric_date': today.isoformat(),
        },
        'box_utilization': {
            'used': in_use_boxes,
            'total': total_boxes,
            'percentage': round(in_use_boxes / total_boxes * 100) if total_boxes else 0,
        },
        'session_status_counts': status_counts,
        'trends': {
            'farmers_change': _farmers_added_on(today).count() - _farmers_added_on(yesterday).count(),
            'revenue_change': today_revenue - yesterday_revenue,
        },
        'recent_activity': _recent_activity(),
        'last_updated': timezone.now(),
    }


def build_dashboard_stats():
    today = timezone.localdate()

    in_use = Box.objects.filter(status=Box.STATUS_IN_USE)
    type_distribution = list(in_use.values('type').annotate(count=Count('id')).order_by('type'))

    utilization_by_type = []
    for box_type, _label in Box.TYPE_CHOICES:
        counts = Box.objects.filter(type=box_type).aggregate(
            available=Count('id', filter=Q(status=Box.STATUS_AVAILABLE)),
            in_use=Count('id', filter=Q(status=Box.STATUS_IN_USE)),
        )
        total = counts['available'] + counts['in_use']
        utilization_by_type.append({
            'type': box_type,
            'available': counts['available'],
            'in_use': counts['in_use'],
            'total': total,
            'utilization_rate': round(counts['in_use'] / total * 100) if total else 0,
        })

    daily_revenue = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        daily_revenue.append({'date': day.isoformat(), 'revenue': _revenue(_sessions_on(day))})

    top_farmers = [
        {
            'id': farmer.id,
            'name': farmer.name,
            'type': farmer.type,
            'total_paid': farmer.total_amount_paid,
            'session_count': farmer.session_count,
        }
        for farmer in Farmer.objects.filter(total_amount_paid__gt=0)
        .annotate(session_count=Count('sessions'))
        .order_by('-total_amount_paid')[:5]
    ]

    recent_sessions = [
        {
            'id': session.id,
            'session_number': session.session_number,
            'date': session.created_at,
            'farmer': {'name': session.farmer.name, 'type': session.farmer.type, 'phone': session.farmer.phone},
            'box_count': session.box_count,
            'total_weight': session.total_box_weight,
            'oil_weight': session.oil_weight,
            'total_price': session.total_price,
            'processing_status': session.processing_status,
            'payment_status': session.payment_status,
            'extraction_rate': session.extraction_rate,
        }
        for session in ProcessingSession.objects.select_related('farmer')[:10]
    ]

    sessions = ProcessingSession.objects.all()
    return {
        'box_stats': {
            'type_distribution': type_distribution,
            'utilization_by_type': utilization_by_type,
        },
        'revenue_stats': {
            'daily': daily_revenue,
            'top_farmers': top_farmers,
        },
        'farmer_stats': {
            'type_distribution': list(Farmer.objects.values('type').annotate(count=Count('id')).order_by('type')),
        },
        'session_stats': {
            'processing_status': list(
                sessions.values('processing_status').annotate(count=Count('id')).order_by('processing_status')
            ),
            'payment_status': list(
                sessions.values('payment_status').annotate(count=Count('id')).order_by('payment_status')
            ),
            'recent': recent_sessions,
        },
        'last_updated': timezone.now(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard metrics, cached until the next write (or refresh=true)"""
    cached, cache_key = get_cached_dashboard('dashboard_metrics')
    if cached is not None and not to_bool(request.query_params.get('refresh')):
        return Response(cached)

    try:
        data = build_dashboard_metrics()
    except Exception as e:
        logger.error(f"Error in dashboard: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while computing dashboard metrics'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    cache_dashboard(cache_key, data, DASHBOARD_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Detailed distributions and trends for the dashboard charts"""
    cached, cache_key = get_cached_dashboard('dashboard_stats')
    if cached is not None and not to_bool(request.query_params.get('refresh')):
        return Response(cached)

    try:
        data = build_dashboard_stats()
    except Exception as e:
        logger.error(f"Error in dashboard_stats: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while computing dashboard statistics'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    cache_dashboard(cache_key, data, DASHBOARD_STATS_CACHE_TTL)
    return Response(data)


def build_real_time_snapshot():
    today = timezone.localdate()
    _available, in_use_boxes = _factory_box_counts()
    today_sessions = _sessions_on(today)

    if in_use_boxes > 500:
        utilization_status = 'high'
    elif in_use_boxes > 300:
        utilization_status = 'medium'
    else:
        utilization_status = 'low'

    latest = [
        {
            'id': session.id,
            'session_number': session.session_number,
            'farmer_name': session.farmer.name,
            'box_count': session.box_count,
            'processing_status': session.processing_status,
            'payment_status': session.payment_status,
            'created_at': session.created_at,
        }
        for session in ProcessingSession.objects.select_related('farmer')[:3]
    ]

    return {
        'counts': {
            'farmers': Farmer.objects.count(),
            'boxes_in_use': in_use_boxes,
            'pending_sessions': ProcessingSession.objects.filter(processing_status='pending').count(),
            'unpaid_sessions': ProcessingSession.objects.exclude(payment_status='paid').count(),
        },
        'today': {
            'sessions': today_sessions.count(),
            'revenue': _revenue(today_sessions),
        },
        'latest_sessions': latest,
        'utilization_status': utilization_status,
        'timestamp': timezone.now(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_real_time(request):
    """Uncached snapshot polled by the UI"""
    try:
        return Response(build_real_time_snapshot())
    except Exception as e:
        logger.error(f"Error in dashboard_real_time: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while fetching real-time data'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
