"""
Bounded retry policy for calls to remote services.
"""

import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from hubcontext.core.exceptions import is_transient_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class wait_exponential_jitter_ratio:
    """Exponential backoff with proportional jitter.

    Delay before retry n is ``min(base * 2**(n-1), maximum)``, then moved by
    up to ``jitter`` of itself in either direction.
    """

    def __init__(self, base: float = 1.0, maximum: float = 10.0, jitter: float = 0.1):
        self.base = base
        self.maximum = maximum
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        attempt = max(retry_state.attempt_number, 1)
        delay = min(self.base * (2 ** (attempt - 1)), self.maximum)
        return max(0.0, delay + delay * random.uniform(-self.jitter, self.jitter))


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Retry attempt {retry_state.attempt_number} failed ({error}); "
        f"retrying in {delay:.2f}s"
    )


async def with_retry(
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    jitter: float = 0.1,
    retry_if: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """
    Run ``operation(*args)`` with exponential backoff.

    Each attempt awaits the coroutine inside tenacity's attempt context, so
    plain callables returning awaitables are retried the same way as
    ``async def`` functions.

    Args:
        operation: Coroutine function, called once per attempt
        args: Positional arguments passed to ``operation`` on every attempt
        attempts: Total number of attempts including the first
        base_delay: Delay in seconds before the first retry
        max_delay: Upper bound for a single delay
        jitter: Proportional jitter applied to each delay
        retry_if: Predicate deciding whether an error is worth retrying
        sleep: Async sleep function (tests pass a no-op)

    Returns:
        The operation's result

    Raises:
        The last error, unchanged, once attempts are exhausted or as soon as
        ``retry_if`` rejects it
    """
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter_ratio(base_delay, max_delay, jitter),
        retry=retry_if_exception(retry_if),
        before_sleep=_log_retry,
        reraise=True,
        **kwargs,
    )
    async for attempt in retrying:
        with attempt:
            return await operation(*args)
