"""
Collector units: 5 galba make one chakra
"""
from decimal import Decimal, ROUND_HALF_UP

GALBA_PER_CHAKRA = 5


def normalize_quantities(chakra, galba):
    """Fold whole chakras out of the galba count: (7, 12) -> (9, 2)"""
    chakra = int(chakra or 0)
    galba = int(galba or 0)
    return chakra + galba // GALBA_PER_CHAKRA, galba % GALBA_PER_CHAKRA


def total_chakra(chakra, galba, nchira_chakra=0, nchira_galba=0):
    total = (
        Decimal(int(chakra or 0))
        + Decimal(int(galba or 0)) / GALBA_PER_CHAKRA
        + Decimal(int(nchira_chakra or 0))
        + Decimal(int(nchira_galba or 0)) / GALBA_PER_CHAKRA
    )
    return total.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def collection_amount(total, price):
    return (Decimal(total) * Decimal(price or 0)).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)


def apply_collection_totals(collection):
    """Normalize both count pairs of a collection and recompute its totals in place"""
    collection.chakra_count, collection.galba_count = normalize_quantities(
        collection.chakra_count, collection.galba_count
    )
    collection.nchira_chakra_count, collection.nchira_galba_count = normalize_quantities(
        collection.nchira_chakra_count, collection.nchira_galba_count
    )
    collection.total_chakra = total_chakra(
        collection.chakra_count, collection.galba_count,
        collection.nchira_chakra_count, collection.nchira_galba_count,
    )
    collection.total_amount = collection_amount(collection.total_chakra, collection.price_per_chakra)
    return collection
