"""Best-effort side effects.

Alerts, generation-log upserts and status notifications must never break the
primary job-state path. Functions decorated with `non_critical` log their
failure with a traceback and return None instead of raising.
"""

import functools
import logging

logger = logging.getLogger(__name__)


def non_critical(label):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception(f"Non-critical side effect '{label}' failed")
                return None
        return wrapper
    return decorator
