"""
Drop the cached dashboard figures whenever data they are computed from changes.
"""
import logging
import threading
from contextlib import contextmanager

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

DASHBOARD_MODELS = {'Product', 'Sale', 'Purchase', 'CashTransaction', 'StockAlert'}

_state = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Skip invalidation for every save inside the block, e.g. a bulk update
    touching many products. Call invalidate_dashboard_cache() afterwards.
    """
    previous = getattr(_state, 'suspended', False)
    _state.suspended = True
    try:
        yield
    finally:
        _state.suspended = previous


def signals_suspended():
    return getattr(_state, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    if signals_suspended() or sender.__name__ not in DASHBOARD_MODELS:
        return
    try:
        invalidate_dashboard_cache()
    except Exception as e:
        # invalidation never fails the write
        logger.warning(f"Dashboard cache invalidation failed after {sender.__name__} change: {e}")
