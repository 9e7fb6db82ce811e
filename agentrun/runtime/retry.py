"""
Retry policy for adapter calls.

Only the adapter call is retried, together with the accumulation of its
stream: a failed attempt is discarded as a whole and the next one starts
from a fresh accumulator. Tool executions are never retried here.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from agentrun.config import RetryConfig
from agentrun.errors import AgentRunError, RateLimitError, StreamDecodeError
from agentrun.runtime.control import AbortSignal, run_until_aborted
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

_JITTER_LOW = 0.75
_JITTER_HIGH = 1.25


def is_retryable(exc: BaseException, config: RetryConfig) -> bool:
    """Classify a failure for the retry policy."""
    if isinstance(exc, StreamDecodeError):
        return config.retry_on_decode_error
    if isinstance(exc, AgentRunError):
        return exc.retryable
    return False


def backoff_delay(config: RetryConfig, retry_number: int) -> float:
    """Delay before retry ``retry_number`` (0-based), without jitter."""
    delay = config.initial_delay * config.backoff_multiplier**retry_number
    return min(delay, config.max_delay)


class wait_backoff(wait_base):
    """
    Exponential backoff with optional +/-25% jitter.

    A RateLimitError carrying a server delay hint waits for that hint
    instead, capped at ``max_delay``.
    """

    def __init__(self, config: RetryConfig, rng: random.Random | None = None):
        self.config = config
        self.rng = rng or random.Random()

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            return min(max(exc.retry_after, 0.0), self.config.max_delay)

        delay = backoff_delay(self.config, retry_state.attempt_number - 1)
        if self.config.jitter:
            delay = min(delay * self.rng.uniform(_JITTER_LOW, _JITTER_HIGH), self.config.max_delay)
        return delay


async def with_retry(
    config: RetryConfig,
    operation: Callable[[], Awaitable[T]],
    *,
    abort_signal: AbortSignal | None = None,
    sleep: Sleep = asyncio.sleep,
    rng: random.Random | None = None,
) -> T:
    """
    Run ``operation`` under the retry policy.

    Non-retryable failures propagate on the first attempt. After
    ``max_retries`` retries the last failure propagates unchanged. An abort
    observed during a backoff sleep raises AbortedError.

    Args:
        config: Backoff settings
        operation: Zero-argument coroutine factory; called once per attempt
        abort_signal: Run cancellation signal
        sleep: Awaitable sleep, injectable for tests
        rng: Random source for jitter
    """

    async def _sleep(delay: float) -> None:
        await run_until_aborted(sleep(delay), abort_signal)

    # AsyncRetrying only awaits coroutine functions, not lambdas returning awaitables
    async def _attempt() -> T:
        return await operation()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.max_retries + 1),
        wait=wait_backoff(config, rng),
        retry=retry_if_exception(lambda exc: is_retryable(exc, config)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=_sleep,
        reraise=True,
    )
    return await retrying(_attempt)


__all__ = ["is_retryable", "backoff_delay", "wait_backoff", "with_retry"]
