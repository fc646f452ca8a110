import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backend.core.cache_signals import suspend_cache_signals, trigger_dashboard_update
from backend.core.utils import create_audit_log, paginate_queryset, to_bool
from .filters import FarmerFilter, BoxFilter
from .models import Farmer, Box
from .serializers import (
    FarmerSerializer, BoxSerializer, BoxAssignSerializer, BoxUpdateSerializer,
    BulkBoxActionSerializer, BoxValidateSerializer, FarmerBoxInputSerializer,
    FarmerBoxBulkSerializer,
)
from .utils import (
    BoxOperationError, assign_boxes_to_farmer, box_sort_key, change_box_id,
    get_next_chkara_id, release_boxes, validate_box_id,
)

logger = logging.getLogger('backend.farmers')

FARMER_SORT_FIELDS = {
    'name': 'name',
    'date_added': 'date_added',
    'total_amount_due': 'total_amount_due',
    'type': 'type',
}

BOX_SORT_FIELDS = {
    'weight': 'current_weight',
    'type': 'type',
    'created_at': 'created_at',
}


# Farmer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def farmer_list_create(request):
    """List farmers (filtered, sorted, paginated) or create a new farmer"""
    if request.method == 'GET':
        queryset = Farmer.objects.annotate(
            in_use_box_count=Count('boxes', filter=Q(boxes__status=Box.STATUS_IN_USE))
        )
        queryset = FarmerFilter(request.query_params, queryset=queryset).qs

        sort_by = FARMER_SORT_FIELDS.get(request.query_params.get('sort_by', 'name'), 'name')
        sort_order = request.query_params.get('sort_order', 'asc')
        queryset = queryset.order_by(f"-{sort_by}" if sort_order == 'desc' else sort_by, 'id')

        include_boxes = to_bool(request.query_params.get('include_boxes'))
        include_sessions = to_bool(request.query_params.get('include_sessions'))
        if include_boxes:
            queryset = queryset.prefetch_related('boxes')

        context = {
            'request': request,
            'include_boxes': include_boxes,
            'include_sessions': include_sessions,
        }
        return Response(paginate_queryset(request, queryset, FarmerSerializer, context=context))
    else:
        serializer = FarmerSerializer(data=request.data)
        if serializer.is_valid():
            farmer = serializer.save()
            trigger_dashboard_update(f"New farmer added: {farmer.name}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def farmer_detail(request, pk):
    """Retrieve (with boxes and sessions), update or delete a farmer"""
    farmer = get_object_or_404(Farmer, pk=pk)

    if request.method == 'GET':
        serializer = FarmerSerializer(farmer, context={'include_boxes': True, 'include_sessions': True})
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = FarmerSerializer(farmer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        with transaction.atomic():
            session_count = farmer.sessions.count()
            box_ids = list(farmer.boxes.values_list('id', flat=True))
            farmer.sessions.all().delete()
            released = release_boxes(box_ids)
            farmer_name = farmer.name
            farmer_id = farmer.pk
            farmer.delete()

        create_audit_log(
            request=request,
            action='delete',
            model_name='Farmer',
            object_id=farmer_id,
            object_name=farmer_name,
            changes={'sessions_deleted': session_count, 'boxes_released': released},
        )
        logger.info(f"Farmer {farmer_name} deleted with {session_count} sessions, {released} boxes released")
        trigger_dashboard_update(f"Farmer deleted: {farmer_name}")
        return Response({
            'message': f"Farmer {farmer_name} deleted ({session_count} session(s) removed, {released} box(es) released)",
            'sessions_deleted': session_count,
            'boxes_released': released,
        })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def farmer_boxes(request, pk):
    """List a farmer's boxes or put one or many boxes in the farmer's name"""
    farmer = get_object_or_404(Farmer, pk=pk)

    if request.method == 'GET':
        boxes = farmer.boxes.select_related('current_farmer').order_by('-assigned_at')
        return Response(BoxSerializer(boxes, many=True).data)

    bulk = 'boxes' in request.data
    if bulk:
        serializer = FarmerBoxBulkSerializer(data=request.data)
    else:
        serializer = FarmerBoxInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    items = serializer.validated_data['boxes'] if bulk else [serializer.validated_data]

    try:
        with suspend_cache_signals():
            with transaction.atomic():
                Farmer.objects.select_for_update().get(pk=farmer.pk)
                assigned = assign_boxes_to_farmer(farmer, items, bulk=bulk)
    except BoxOperationError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    trigger_dashboard_update(f"{len(assigned)} box(es) assigned to {farmer.name}")
    data = BoxSerializer(assigned, many=True).data
    if bulk:
        return Response({'boxes': data, 'count': len(data)}, status=status.HTTP_201_CREATED)
    return Response(data[0], status=status.HTTP_201_CREATED)


# Box views
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def box_list(request):
    """List boxes, or select/unselect/delete many boxes at once"""
    if request.method == 'GET':
        queryset = BoxFilter(request.query_params, queryset=Box.objects.select_related('current_farmer')).qs

        sort_by = request.query_params.get('sort_by', 'id')
        descending = request.query_params.get('sort_order', 'asc') == 'desc'
        if sort_by in BOX_SORT_FIELDS:
            field = BOX_SORT_FIELDS[sort_by]
            queryset = queryset.order_by(f"-{field}" if descending else field, 'id')
        else:
            # String primary keys need numeric-aware ordering
            queryset = sorted(queryset, key=lambda b: box_sort_key(b.id), reverse=descending)

        return Response(paginate_queryset(request, queryset, BoxSerializer))

    serializer = BulkBoxActionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    box_ids = serializer.validated_data['box_ids']
    action = serializer.validated_data['action']
    boxes = Box.objects.filter(pk__in=box_ids)

    if action in ('select', 'unselect'):
        updated = boxes.update(is_selected=action == 'select', updated_at=timezone.now())
        return Response({'updated': updated, 'action': action})

    busy = list(boxes.filter(status=Box.STATUS_IN_USE).values_list('id', flat=True))
    if busy:
        return Response({
            'error': f"Cannot delete boxes in use: {', '.join(sorted(busy, key=box_sort_key))}",
            'box_ids': busy,
        }, status=status.HTTP_400_BAD_REQUEST)

    with suspend_cache_signals():
        with transaction.atomic():
            chkara_deleted, _ = boxes.filter(type='chkara').delete()
            reset = release_boxes(box_ids)

    trigger_dashboard_update(f"Bulk box delete: {chkara_deleted} sack(s) removed, {reset} box(es) reset")
    return Response({'deleted': chkara_deleted, 'reset': reset, 'action': action})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def box_available(request):
    """Available factory boxes (Chkara sacks excluded), ordered numerically"""
    try:
        limit = max(1, int(request.query_params.get('limit', 50)))
        offset = max(0, int(request.query_params.get('offset', 0)))
    except ValueError:
        return Response({'error': 'limit and offset must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    boxes = Box.objects.filter(status=Box.STATUS_AVAILABLE).exclude(type='chkara').exclude(id__startswith='Chkara')
    ordered = sorted(boxes, key=lambda b: box_sort_key(b.id))
    page = ordered[offset:offset + limit]
    return Response({
        'results': BoxSerializer(page, many=True).data,
        'count': len(ordered),
        'limit': limit,
        'offset': offset,
        'has_more': offset + limit < len(ordered),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def box_reset(request):
    """Release every IN_USE box back to AVAILABLE"""
    with suspend_cache_signals():
        with transaction.atomic():
            in_use_ids = list(Box.objects.select_for_update().filter(status=Box.STATUS_IN_USE).values_list('id', flat=True))
            reset_count = release_boxes(in_use_ids) if in_use_ids else 0

    if reset_count:
        create_audit_log(
            request=request,
            action='box_reset',
            model_name='Box',
            object_id='all',
            changes={'reset_count': reset_count},
        )
        logger.info(f"Box reset: {reset_count} boxes made available")
        trigger_dashboard_update(f"Box reset: {reset_count} boxes made available")

    return Response({
        'reset_count': reset_count,
        'message': f"{reset_count} box(es) reset" if reset_count else 'No box in use to reset',
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def box_validate(request):
    """Check that a box id is well formed for its type and not taken"""
    serializer = BoxValidateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    result = validate_box_id(data['id'], data['type'], exclude_box_id=data.get('exclude_box_id'))
    return Response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def box_next_chkara_id(request):
    """Next Chkara sack id (lowest gap in the sequence)"""
    return Response({'next_id': get_next_chkara_id()})


@api_view(['GET', 'POST', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def box_detail(request, pk):
    """
    GET: box details
    POST: assign the box to a farmer
    PUT: update weight/type/id of a box in use
    DELETE: release the box
    """
    box = get_object_or_404(Box.objects.select_related('current_farmer'), pk=pk)

    if request.method == 'GET':
        return Response(BoxSerializer(box).data)

    if request.method == 'POST':
        serializer = BoxAssignSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        farmer = Farmer.objects.filter(pk=serializer.validated_data['farmer']).first()
        if not farmer:
            return Response({'error': 'Farmer not found'}, status=status.HTTP_404_NOT_FOUND)

        with transaction.atomic():
            box = Box.objects.select_for_update().get(pk=box.pk)
            if not box.is_available:
                return Response({'error': f'Box {box.id} is not available'}, status=status.HTTP_400_BAD_REQUEST)
            box.assign(farmer, weight=serializer.validated_data.get('weight'),
                       box_type=serializer.validated_data.get('type'))
            box.save()
        return Response(BoxSerializer(box).data)

    if request.method == 'PUT':
        if box.status != Box.STATUS_IN_USE:
            return Response({'error': 'Only boxes in use can be updated'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = BoxUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            with transaction.atomic():
                if 'weight' in data:
                    box.current_weight = data['weight']
                if data.get('type'):
                    box.type = data['type']
                box.save()
                if data.get('new_id') and data['new_id'].strip() != box.id:
                    box = change_box_id(box, data['new_id'])
        except BoxOperationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(BoxSerializer(box).data)

    # DELETE: release
    if box.status != Box.STATUS_IN_USE or not box.current_farmer_id:
        return Response({'error': f'Box {box.id} is not assigned to a farmer'}, status=status.HTTP_400_BAD_REQUEST)
    box.clear()
    box.save()
    return Response(BoxSerializer(box).data)
