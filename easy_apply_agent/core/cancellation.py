"""Cooperative cancellation and bounded polling."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """Stop signal passed into every suspension point of an attempt.

    Waiting helpers check the token on each poll tick and resolve early with
    a "not satisfied" result instead of raising, so that the caller's cleanup
    path always runs.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "stop requested") -> None:
        """Request cancellation. Idempotent; the first reason is kept."""
        if not self._event.is_set():
            self.reason = reason
            logger.info(f"Cancellation requested: {reason}")
            self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early on cancellation.

        Args:
            seconds: Maximum time to sleep

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if self.cancelled:
            return False
        if seconds <= 0:
            # Still yield to the loop so other tasks can run
            await asyncio.sleep(0)
            return not self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False


async def poll_until(
    predicate: Callable[[], Awaitable[Any]],
    timeout: float,
    interval: float,
    token: Optional[CancellationToken] = None,
    description: str = "condition",
) -> Any:
    """
    Poll an async predicate until it returns a truthy value.

    Args:
        predicate: Zero-argument coroutine function
        timeout: Maximum time to wait in seconds
        interval: Delay between polls in seconds
        token: Optional cancellation token checked on every tick
        description: Name used in debug logging

    Returns:
        The first truthy predicate result, or None on timeout or cancellation
    """
    deadline = time.monotonic() + max(timeout, 0)
    while True:
        if token is not None and token.cancelled:
            logger.debug(f"Stopped waiting for {description}: cancelled")
            return None
        result = await predicate()
        if result:
            return result
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug(f"Timed out after {timeout}s waiting for {description}")
            return None
        delay = min(interval, remaining)
        if token is not None:
            if not await token.sleep(delay):
                logger.debug(f"Stopped waiting for {description}: cancelled")
                return None
        else:
            await asyncio.sleep(delay)
