"""
Cache invalidation signals
Automatically invalidate the dashboard cache when business data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

# Models whose changes affect dashboard figures
DASHBOARD_MODELS = {
    'Farmer',
    'Box',
    'ProcessingSession',
    'PaymentTransaction',
    'Transaction',
    'OlivePurchase',
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk box operations to prevent excessive cache clearing.
    Remember to call trigger_dashboard_update() after the block!
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def trigger_dashboard_update(reason=''):
    """Invalidate cached dashboard data once the current transaction commits"""
    def invalidate_after_commit():
        try:
            invalidate_dashboard_cache()
            logger.info(f"Dashboard cache invalidated: {reason or 'unspecified'}")
        except Exception as e:
            logger.warning(f"Error invalidating dashboard cache ({reason}): {e}")

    transaction.on_commit(invalidate_after_commit)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard cache when farmers, boxes, sessions or money movements change"""
    if is_suspended():
        return

    model_name = sender.__name__
    if model_name not in DASHBOARD_MODELS:
        return

    action = 'deleted' if kwargs.get('signal') is post_delete else 'saved'
    trigger_dashboard_update(f"{model_name} {action}")
