import asyncio
import functools
import logging
from typing import TypeVar, Callable, Any, Tuple, Type

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
):
    """
    Decorator for async functions that implements exponential backoff retry logic.

    Only exceptions listed in ``retry_on`` are retried; anything else (and
    task cancellation) propagates immediately.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds before first retry
        exponential_base: Base for exponential backoff calculation
        max_delay: Maximum delay between retries
        retry_on: Exception types that trigger a retry
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Function {func.__name__} failed after {max_retries} retries",
                            extra={"error": str(e)}
                        )
                        raise

                    logger.warning(
                        f"Function {func.__name__} failed on attempt {attempt + 1}/{max_retries + 1}. "
                        f"Retrying in {delay:.2f}s",
                        extra={"error": str(e), "attempt": attempt + 1}
                    )

                    await asyncio.sleep(delay)
                    delay = min(delay * exponential_base, max_delay)

        return wrapper
    return decorator
