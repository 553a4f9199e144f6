"""
Exponential backoff for calls to flaky collaborators (outbox publishers).
"""
import logging
import random
import time
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


def backoff_delays(initial_delay: float, exponential_base: float, max_delay: float, jitter: bool):
    """Yield the wait before each retry: growing, capped, optionally jittered by up to 25%."""
    delay = initial_delay
    while True:
        extra = delay * 0.25 * random.random() if jitter else 0.0
        yield min(delay + extra, max_delay)
        delay *= exponential_base


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry the decorated call on ``exceptions``.

    The call runs at most ``max_retries + 1`` times; the last failure is
    re-raised unchanged. ``sleep`` is injectable so callers and tests control
    the waiting.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delays = backoff_delays(initial_delay, exponential_base, max_delay, jitter)

            for attempt in range(1, max_retries + 2):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt > max_retries:
                        raise
                    wait = next(delays)
                    logger.warning(
                        "retry_scheduled",
                        extra={
                            "operation": name,
                            "error": f"{type(e).__name__}: {e}",
                            "status": f"attempt {attempt}, next in {wait:.2f}s",
                        },
                    )
                    sleep(wait)

        return wrapper
    return decorator
