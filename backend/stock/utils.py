"""
Safe stock bookkeeping. Callers hold select_for_update() locks on the safes.
"""
from decimal import Decimal, ROUND_HALF_UP


class StockError(Exception):
    """A stock movement would overflow or empty a safe below zero"""


def purchase_totals(olive_weight, price_per_kg, oil_produced=None, is_base_purchase=False):
    """Return (total_cost, yield_percentage) for a purchase"""
    olive_weight = Decimal(olive_weight)
    price_per_kg = Decimal(price_per_kg)
    oil = Decimal(oil_produced) if oil_produced else None

    if is_base_purchase and oil:
        total_cost = oil * price_per_kg
    else:
        total_cost = olive_weight * price_per_kg
    total_cost = total_cost.quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)

    yield_percentage = None
    if oil and olive_weight > 0:
        yield_percentage = (oil / olive_weight * 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return total_cost, yield_percentage


def add_oil(safe, quantity):
    quantity = Decimal(quantity or 0)
    if quantity <= 0:
        return safe
    if quantity > safe.available_capacity:
        raise StockError(
            f"Insufficient capacity in {safe.name}. Available: {safe.available_capacity:.2f} kg, "
            f"required: {quantity:.2f} kg"
        )
    safe.current_stock += quantity
    safe.save(update_fields=['current_stock', 'updated_at'])
    return safe


def remove_oil(safe, quantity):
    quantity = Decimal(quantity or 0)
    if quantity <= 0:
        return safe
    if quantity > safe.current_stock:
        raise StockError(
            f"Insufficient stock in {safe.name}. Available: {safe.current_stock:.2f} kg, "
            f"required: {quantity:.2f} kg"
        )
    safe.current_stock -= quantity
    safe.save(update_fields=['current_stock', 'updated_at'])
    return safe


def adjust_oil(safe, old_quantity, new_quantity):
    """Apply the difference between two oil quantities held in the same safe"""
    delta = Decimal(new_quantity or 0) - Decimal(old_quantity or 0)
    if delta > 0:
        return add_oil(safe, delta)
    return remove_oil(safe, -delta)
