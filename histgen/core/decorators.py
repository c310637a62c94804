import asyncio
import logging
from functools import wraps
from typing import Tuple, Type


logger = logging.getLogger(__name__)


def async_retry(
    max_retries: int = 3,
    delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
):
    """Decorator for async retry logic with exponential backoff.

    ``max_retries`` and ``delay`` may be overridden per call through the
    ``_max_retries`` and ``_delay`` keyword arguments, which lets callers
    thread a configured retry policy through without rebuilding the wrapper.
    Exceptions not listed in ``retry_on`` propagate immediately.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, _max_retries: int = None, _delay: float = None, **kwargs):
            attempts = max(1, _max_retries if _max_retries is not None else max_retries)
            base_delay = _delay if _delay is not None else delay
            last_exception = None
            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if attempt < attempts - 1:
                        wait = base_delay * (2 ** attempt)  # Exponential backoff
                        logger.warning(
                            f"{func.__name__} failed (attempt {attempt + 1}/{attempts}): {e}. "
                            f"Retrying in {wait:.1f}s"
                        )
                        await asyncio.sleep(wait)
                    continue
            raise last_exception
        return wrapper
    return decorator
