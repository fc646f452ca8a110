"""
Box numbering, box id validation and farmer balance helpers
"""
import re
import logging
from decimal import Decimal

from django.conf import settings
from django.db.models import Sum, DecimalField

from .models import Box, Farmer

logger = logging.getLogger(__name__)

CHKARA_PREFIX = 'Chkara'
CHKARA_ID_PATTERN = re.compile(r'^Chkara(\d+)$')


def get_max_box_id():
    return settings.HUILERIE['MAX_BOX_ID']


def factory_box_ids():
    """Ids of the fixed factory inventory: "1".."MAX_BOX_ID" """
    return [str(i) for i in range(1, get_max_box_id() + 1)]


def is_factory_box_id(box_id):
    """True for a numeric id inside the factory range"""
    box_id = str(box_id).strip()
    if not box_id.isdigit():
        return False
    return 1 <= int(box_id) <= get_max_box_id()


def parse_chkara_number(box_id):
    """Numeric suffix of a Chkara id, or None"""
    match = CHKARA_ID_PATTERN.match(str(box_id))
    return int(match.group(1)) if match else None


def next_chkara_number(used_numbers):
    """
    First positive integer missing from used_numbers.

    Examples:
        [] -> 1
        [1, 2, 3] -> 4
        [1, 2, 4] -> 3
        [2, 3] -> 1
    """
    expected = 1
    for number in sorted(set(used_numbers)):
        if number < expected:
            continue
        if number != expected:
            break
        expected += 1
    return expected


def get_next_chkara_id():
    """Next free Chkara sack id, filling the lowest gap in the existing sequence"""
    used = []
    for box_id in Box.objects.filter(id__startswith=CHKARA_PREFIX).values_list('id', flat=True):
        number = parse_chkara_number(box_id)
        if number is not None:
            used.append(number)
    return f"{CHKARA_PREFIX}{next_chkara_number(used)}"


def box_sort_key(box_id):
    """Order factory boxes numerically, then Chkara sacks numerically, then anything else"""
    box_id = str(box_id)
    if box_id.isdigit():
        return (0, int(box_id), '')
    chkara_number = parse_chkara_number(box_id)
    if chkara_number is not None:
        return (1, chkara_number, '')
    return (2, 0, box_id)


def validate_box_id(box_id, box_type, exclude_box_id=None, check_exists=True):
    """
    Validate a box id for the given box type.

    Returns:
        dict {'is_valid': bool, 'id': str, 'error': str|None, 'suggested_id': str|None}
    """
    box_id = str(box_id or '').strip()
    result = {'is_valid': False, 'id': box_id, 'error': None, 'suggested_id': None}

    if box_type == 'chkara':
        result['suggested_id'] = get_next_chkara_id()
        if not box_id:
            result['error'] = 'Box id is required'
            return result
        if parse_chkara_number(box_id) is None:
            result['error'] = f'Chkara id must look like "{CHKARA_PREFIX}<number>"'
            return result
    else:
        if not box_id:
            result['error'] = 'Box id is required'
            return result
        if not is_factory_box_id(box_id):
            result['error'] = f'Box id must be a number between 1 and {get_max_box_id()}'
            return result

    if check_exists:
        queryset = Box.objects.filter(id=box_id)
        if exclude_box_id:
            queryset = queryset.exclude(id=str(exclude_box_id))
        if queryset.exists():
            result['error'] = f'Box {box_id} already exists'
            return result

    result['is_valid'] = True
    return result


def compute_farmer_totals(farmer):
    """
    Balance of a farmer from its sessions.
    due = sum of session prices, paid = sum of amounts paid on sessions.
    """
    from backend.processing.models import ProcessingSession

    totals = ProcessingSession.objects.filter(farmer=farmer).aggregate(
        due=Sum('total_price', output_field=DecimalField()),
        paid=Sum('amount_paid', output_field=DecimalField()),
    )
    due = totals['due'] or Decimal('0.000')
    paid = totals['paid'] or Decimal('0.000')

    if due > 0 and paid >= due:
        payment_status = 'paid'
    elif paid > 0:
        payment_status = 'partial'
    else:
        payment_status = 'pending'
    return due, paid, payment_status


def update_farmer_totals(farmer_id):
    """Recompute and store a farmer's amounts due/paid and payment status"""
    farmer = Farmer.objects.filter(pk=farmer_id).first()
    if not farmer:
        return None

    due, paid, payment_status = compute_farmer_totals(farmer)
    farmer.total_amount_due = due
    farmer.total_amount_paid = paid
    farmer.payment_status = payment_status
    farmer.save(update_fields=['total_amount_due', 'total_amount_paid', 'payment_status', 'updated_at'])
    logger.debug(f"Farmer {farmer.pk} totals: due={due} paid={paid} status={payment_status}")
    return farmer


class BoxOperationError(Exception):
    """A box lifecycle rule was violated (box busy, id out of range, ...)"""


def create_chkara_box(farmer, weight=None, attempts=5):
    """
    Create an IN_USE Chkara sack for a farmer at the next free number.
    Another request may take the same number first; the insert then fails on
    the primary key and the next gap is tried.
    """
    from django.db import IntegrityError, transaction

    for _ in range(attempts):
        box_id = get_next_chkara_id()
        box = Box(id=box_id, type='chkara')
        box.assign(farmer, weight=weight)
        try:
            with transaction.atomic():
                box.save(force_insert=True)
            return box
        except IntegrityError:
            logger.warning(f"Chkara id {box_id} taken concurrently, retrying")
    raise BoxOperationError('Could not allocate a Chkara id, please retry')


def assign_boxes_to_farmer(farmer, items, bulk=False):
    """
    Put boxes in a farmer's name. Must run inside a transaction.

    items: dicts with 'type', optional 'id' and 'weight'.
    - chkara: a new sack is numbered automatically
    - bulk requests only take existing AVAILABLE boxes
    - a single request creates a missing factory box after validating its id
    """
    assigned = []
    for item in items:
        box_type = item['type']
        weight = item.get('weight')

        if box_type == 'chkara':
            assigned.append(create_chkara_box(farmer, weight=weight))
            continue

        box_id = str(item.get('id') or '').strip()
        box = Box.objects.select_for_update().filter(pk=box_id).first()

        if box is None:
            if bulk:
                raise BoxOperationError(f'Box {box_id} does not exist')
            validation = validate_box_id(box_id, box_type, check_exists=False)
            if not validation['is_valid']:
                raise BoxOperationError(validation['error'])
            box = Box(id=box_id, type=box_type)
            box.assign(farmer, weight=weight, box_type=box_type)
            box.save(force_insert=True)
            assigned.append(box)
            continue

        if not box.is_available:
            owner = box.current_farmer.name if box.current_farmer else 'another farmer'
            raise BoxOperationError(f'Box {box_id} is already in use by {owner}')

        box.assign(farmer, weight=weight, box_type=box_type)
        box.save()
        assigned.append(box)

    return assigned


def release_boxes(box_ids):
    """Return boxes to AVAILABLE and clear their assignment. Returns the number updated."""
    from django.utils import timezone

    return Box.objects.filter(pk__in=list(box_ids)).update(
        status=Box.STATUS_AVAILABLE,
        current_farmer=None,
        current_weight=None,
        assigned_at=None,
        is_selected=False,
        updated_at=timezone.now(),
    )


def change_box_id(box, new_id):
    """
    Move an IN_USE box's assignment to another id. Must run inside a transaction.
    A busy target is refused; an AVAILABLE target row is replaced.
    """
    new_id = str(new_id).strip()
    if new_id == box.id:
        return box

    validation = validate_box_id(new_id, box.type, check_exists=False)
    if not validation['is_valid']:
        raise BoxOperationError(validation['error'])

    target = Box.objects.select_for_update().filter(pk=new_id).first()
    if target is not None:
        if target.status == Box.STATUS_IN_USE and target.current_farmer_id:
            raise BoxOperationError(f'Box {new_id} is already in use')
        target.delete()

    moved = Box.objects.create(
        id=new_id,
        type=box.type,
        status=box.status,
        current_farmer=box.current_farmer,
        current_weight=box.current_weight,
        assigned_at=box.assigned_at,
        is_selected=box.is_selected,
    )
    box.delete()
    return moved
