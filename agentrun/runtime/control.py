"""
Cancellation for agent runs.

This module consolidates:
- AbortSignal: run-scoped cancellation flag
- run_until_aborted: race an awaitable against the signal
"""

import asyncio
from typing import Awaitable, TypeVar

from agentrun.errors import AbortedError
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class AbortSignal:
    """
    Abort signal for graceful cancellation of long-running operations.

    Based on asyncio.Event, supports:
    - Synchronous abort status check
    - Async wait for abort signal
    - Recording abort reason

    Examples:
        >>> signal = AbortSignal()
        >>>
        >>> # Trigger abort in another task
        >>> signal.abort("User cancelled")
        >>>
        >>> # Check in tool execution
        >>> if signal.is_aborted():
        >>>     return  # Early exit
        >>>
        >>> # Or async wait
        >>> await signal.wait()
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    def abort(self, reason: str = "Operation cancelled"):
        """Trigger abort signal."""
        self._reason = reason
        self._event.set()

    def is_aborted(self) -> bool:
        """Check if abort has been triggered."""
        return self._event.is_set()

    async def wait(self):
        """Async wait for abort signal."""
        await self._event.wait()

    @property
    def reason(self) -> str | None:
        """Get abort reason."""
        return self._reason

    def raise_if_aborted(self) -> None:
        if self.is_aborted():
            raise AbortedError(self._reason or "Operation cancelled")


async def run_until_aborted(awaitable: Awaitable[T], signal: AbortSignal | None) -> T:
    """
    Await ``awaitable`` unless ``signal`` fires first.

    On abort the pending work is cancelled, awaited until it has unwound,
    and AbortedError is raised.
    """
    task = asyncio.ensure_future(awaitable)
    if signal is None:
        return await task

    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    logger.info("operation_aborted", reason=signal.reason)
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise AbortedError(signal.reason or "Operation cancelled")


__all__ = ["AbortSignal", "run_until_aborted"]
