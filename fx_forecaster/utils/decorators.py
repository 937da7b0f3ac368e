"""Utility decorators for resilience and execution logging."""
import asyncio
import functools
import time
from typing import Callable, Tuple, Type

from fx_forecaster.utils.logging import get_logger

logger = get_logger(__name__)


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Retry an async function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first call)
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after each failure
        exceptions: Exception types that trigger a retry; anything else
            propagates immediately

    Example:
        @retry(max_attempts=3, delay=0.5, exceptions=(httpx.TransportError,))
        async def fetch():
            ...
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def decorator(func: Callable):
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"retry() expects a coroutine function, got {func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts",
                            extra={"error": str(e), "attempts": attempt}
                        )
                        raise
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{max_attempts}), "
                        f"retrying in {current_delay}s",
                        extra={"error": str(e), "delay": current_delay}
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator


def log_execution(log_args: bool = True, log_result: bool = False):
    """
    Log start, completion and failure of a function with wall-clock timing.

    Works for both plain and coroutine functions.
    """
    def decorator(func: Callable):
        name = func.__name__

        def _started(args, kwargs) -> float:
            extra = {"function": name}
            if log_args:
                extra["function_args"] = str(args)[:100]
                extra["function_kwargs"] = str(kwargs)[:100]
            logger.debug(f"Starting {name}", extra=extra)
            return time.perf_counter()

        def _finished(start: float, result=None, error: Exception = None) -> None:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            extra = {"function": name, "execution_time_ms": elapsed_ms}
            if error is not None:
                extra["error"] = str(error)
                logger.error(f"Failed {name} after {elapsed_ms}ms", extra=extra)
                return
            if log_result:
                extra["result"] = str(result)[:100]
            logger.info(f"Completed {name} in {elapsed_ms}ms", extra=extra)

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = _started(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _finished(start, error=e)
                    raise
                _finished(start, result)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = _started(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _finished(start, error=e)
                raise
            _finished(start, result)
            return result

        return sync_wrapper

    return decorator
