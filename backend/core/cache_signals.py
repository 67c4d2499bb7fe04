"""
Cache invalidation signals
Automatically invalidate the dashboard cache when order or catalog data changes
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

DASHBOARD_MODELS = ('SaleOrder', 'OrderItem', 'Product', 'User')


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard stats when orders, items, products or users change"""
    if is_suspended():
        return

    if sender.__name__ not in DASHBOARD_MODELS:
        return

    # Invalidate AFTER commit so the cache is not repopulated with stale data
    transaction.on_commit(invalidate_dashboard_cache)
