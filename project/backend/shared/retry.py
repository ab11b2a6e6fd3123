"""
Retry logic with exponential backoff.

Decorator for automatic retry with exponential backoff on retryable errors.
Only infrastructure calls (storage, queue) use it; reasoning-service calls are
never retried here.
"""

import asyncio
import functools
import time
from typing import Callable, Type, Tuple, Any, TypeVar

from shared.errors import RetryableError, RateLimitError
from shared.logging import get_logger

T = TypeVar("T")
logger = get_logger("retry")


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 2,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError, RateLimitError)
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 2)
        retryable_exceptions: Exception types to retry on

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=2)
        async def upload():
            ...
    """
    def _delay_for(attempt: int) -> float:
        # 2s, 4s, 8s, ...
        return base_delay * (2 ** attempt)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                for attempt in range(max_attempts):
                    try:
                        return await func(*args, **kwargs)
                    except retryable_exceptions as e:
                        if attempt == max_attempts - 1:
                            logger.error(
                                f"All {max_attempts} attempts failed for {func.__name__}",
                                extra={"error": str(e)}
                            )
                            raise
                        delay = _delay_for(attempt)
                        logger.warning(
                            f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__} "
                            f"after {delay}s delay",
                            extra={"error": str(e), "attempt": attempt + 1}
                        )
                        await asyncio.sleep(delay)
                raise RuntimeError(f"Function {func.__name__} failed after {max_attempts} attempts")

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == max_attempts - 1:
                        logger.error(
                            f"All {max_attempts} attempts failed for {func.__name__}",
                            extra={"error": str(e)}
                        )
                        raise
                    delay = _delay_for(attempt)
                    logger.warning(
                        f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__} "
                        f"after {delay}s delay",
                        extra={"error": str(e), "attempt": attempt + 1}
                    )
                    time.sleep(delay)
            raise RuntimeError(f"Function {func.__name__} failed after {max_attempts} attempts")

        return sync_wrapper

    return decorator
