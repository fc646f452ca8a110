"""
Session numbering, payment arithmetic and session merging
"""
import re
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from .models import ProcessingSession

SESSION_NUMBER_PATTERN = re.compile(r'^S#(\d+)')
MONEY = Decimal('0.001')


class PaymentError(Exception):
    """A payment could not be applied to a session"""


def quantize_money(value):
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def parse_session_number(session_number):
    match = SESSION_NUMBER_PATTERN.match(session_number or '')
    return int(match.group(1)) if match else None


def next_session_number():
    """S#<n+1> where n is the highest session number issued so far"""
    highest = 0
    for number in ProcessingSession.objects.values_list('session_number', flat=True):
        parsed = parse_session_number(number)
        if parsed is not None and parsed > highest:
            highest = parsed
    return f"S#{highest + 1}"


def payment_status_for(total_price, total_paid):
    if total_price is not None and total_price > 0 and total_paid >= total_price:
        return 'paid'
    if total_paid > 0:
        return 'partial'
    return 'unpaid'


def compute_payment(total_box_weight, price_per_kg, already_paid, amount):
    """
    Apply a payment of `amount` at `price_per_kg` on top of `already_paid`.

    Returns dict with total_price, total_paid, remaining_amount and payment_status.
    Raises PaymentError when the payment would exceed the price.
    """
    price_per_kg = Decimal(price_per_kg)
    amount = Decimal(amount)
    if price_per_kg <= 0:
        raise PaymentError('Price per kg must be greater than 0')
    if amount < 0:
        raise PaymentError('Amount paid cannot be negative')

    total_price = quantize_money(Decimal(total_box_weight) * price_per_kg)
    total_paid = quantize_money(Decimal(already_paid or 0) + amount)
    if total_paid > total_price:
        raise PaymentError(
            f"Total paid ({total_paid}) would exceed the session price ({total_price})"
        )

    return {
        'total_price': total_price,
        'total_paid': total_paid,
        'remaining_amount': max(Decimal('0.000'), total_price - total_paid),
        'payment_status': payment_status_for(total_price, total_paid),
    }


def merge_session_boxes(sessions):
    """
    Combine the box snapshots of several sessions.
    A box id seen in more than one session appears once with the weights summed.
    """
    merged = OrderedDict()
    for session in sessions:
        for session_box in session.session_boxes.all():
            entry = merged.get(session_box.box_id)
            weight = session_box.box_weight or Decimal('0.00')
            if entry is None:
                merged[session_box.box_id] = {
                    'box_id': session_box.box_id,
                    'box_type': session_box.box_type,
                    'box_weight': weight,
                }
            else:
                entry['box_weight'] += weight
    return list(merged.values())


def combine_session_notes(sessions):
    blocks = [
        f"Note session {session.session_number}:\n{session.notes.strip()}"
        for session in sessions
        if session.notes and session.notes.strip()
    ]
    if not blocks:
        return f"Session groupée de {len(sessions)} sessions"
    return '\n\n'.join(blocks)


def grouped_session_number(session_number):
    """Number of a grouped session, built from the first session's S#n only"""
    parsed = parse_session_number(session_number)
    if parsed is not None:
        return f"S#{parsed} (Groupé)"
    return f"{(session_number or '').split(' ')[0]} (Groupé)"
