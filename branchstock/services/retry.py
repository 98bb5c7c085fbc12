"""
Conflict retry — re-run a whole operation after an optimistic-lock miss.
"""

import functools
import logging

from branchstock.conf import branchstock_settings
from branchstock.exceptions import ConcurrencyConflictError

logger = logging.getLogger('branchstock')


def retry_on_conflict(func=None, *, attempts: int | None = None):
    """
    Retry ``func`` when it raises ConcurrencyConflictError.

    The wrapped call must be a complete unit of work (its own
    transaction.atomic()), so a retry never merges partial state.
    Any other exception propagates immediately.

    Args:
        attempts: Total tries; defaults to CONFLICT_MAX_RETRIES
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            limit = max(1, attempts or branchstock_settings.CONFLICT_MAX_RETRIES)
            for attempt in range(1, limit + 1):
                try:
                    return fn(*args, **kwargs)
                except ConcurrencyConflictError as exc:
                    if attempt >= limit:
                        raise
                    logger.warning(
                        "stock.conflict.retry",
                        extra={
                            "operation": fn.__qualname__,
                            "attempt": attempt,
                            "data": exc.data,
                        },
                    )
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
