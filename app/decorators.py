"""Reusable decorators for cross-cutting concerns."""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, Optional, TypeVar

F = TypeVar('F', bound=Callable[..., Any])


def timeit(
    logger_name: Optional[str] = None,
    log_level: int = logging.INFO
) -> Callable[[F], F]:
    """Decorator to measure and log function execution time.

    Args:
        logger_name: Optional logger name (defaults to function's module)
        log_level: Logging level for timing messages

    Returns:
        Decorated function with timing

    Example:
        ```python
        @timeit()
        async def probe(path):
            # Logs: "probe completed in 0.35s"
            ...
        ```
    """
    def decorator(func: F) -> F:
        def _log(elapsed: float) -> None:
            _logger = logging.getLogger(logger_name or func.__module__)
            _logger.log(log_level, f"{func.__name__} completed in {elapsed:.3f}s")

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log(time.perf_counter() - start_time)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log(time.perf_counter() - start_time)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
