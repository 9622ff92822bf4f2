"""
Retry utilities for resilient persistence calls.

Runs an async callable with exponential backoff, configurable exceptions
and logging.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Optional, Sequence, Type

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

# Default exceptions to retry on
DEFAULT_RETRY_EXCEPTIONS: tuple = (
    ConnectionError,
    TimeoutError,
    OperationalError,
)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_max: float = 0.5,
        exceptions: Sequence[Type[BaseException]] = DEFAULT_RETRY_EXCEPTIONS,
        on_retry: Optional[Callable[[BaseException, int], Any]] = None,
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (including first try)
            base_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries in seconds
            exponential_base: Base for exponential backoff (delay * base^attempt)
            jitter: Whether to add random jitter to delays
            jitter_max: Maximum jitter as fraction of delay (0.0 to 1.0)
            exceptions: Tuple of exception types to retry on
            on_retry: Optional callback (sync or async) called with (exception, attempt)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_max = jitter_max
        self.exceptions = tuple(exceptions)
        self.on_retry = on_retry

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given attempt number.

        Args:
            attempt: The attempt number (0-indexed)

        Returns:
            Delay in seconds with optional jitter
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_amount = delay * random.uniform(0, self.jitter_max)
            delay += jitter_amount

        return delay


async def run_with_retry(
    config: RetryConfig,
    func: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Await ``func(*args, **kwargs)``, retrying per *config*.

    The last exception is re-raised once all attempts are exhausted.
    """
    name = getattr(func, "__name__", repr(func))
    last_exception: Optional[BaseException] = None

    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except config.exceptions as e:
            last_exception = e

            if attempt < config.max_attempts - 1:
                delay = config.calculate_delay(attempt)
                logger.warning(
                    f"Retry {attempt + 1}/{config.max_attempts} for {name}: "
                    f"{type(e).__name__}: {e}. Waiting {delay:.2f}s"
                )

                if config.on_retry:
                    outcome = config.on_retry(e, attempt + 1)
                    if asyncio.iscoroutine(outcome):
                        await outcome

                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"All {config.max_attempts} attempts failed for {name}: "
                    f"{type(e).__name__}: {e}"
                )

    if last_exception:
        raise last_exception
    raise RuntimeError(f"Retry failed for {name}")
