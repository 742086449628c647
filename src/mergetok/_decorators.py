"""Reusable decorators for training and tokenizer utilities."""

import functools
import logging
import time
from collections.abc import Callable

log = logging.getLogger(__name__)


def measure_time(label: str) -> Callable[[Callable], Callable]:
    """Log execution time of the wrapped callable under ``label``."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            """Call ``func`` and always log elapsed time."""
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            # log execution time even if the decorated function throws error
            finally:
                elapsed = time.perf_counter() - start
                log.info(f"{label} completed in {elapsed:.2f} s ({elapsed / 60:.2f} mins)")

        return wrapper

    return decorator
