"""Rate limiting for answer service calls."""

import asyncio
import time
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

class RateLimitedQueue:
    """Spaces API calls so that at most `rpm_limit` start per minute."""

    def __init__(self, rpm_limit: int = 15):
        """
        Initialize the rate limited queue.

        Args:
            rpm_limit: Maximum requests per minute; 0 or less disables limiting
        """
        self.rpm_limit = rpm_limit
        self.time_between_requests = 60 / rpm_limit if rpm_limit > 0 else 0.0  # seconds
        self.last_request_time = 0.0
        self._lock = asyncio.Lock()
        logger.info(f"Rate limiter initialized with {rpm_limit} RPM limit")

    async def execute_api_call(self, api_func: Callable, *args: Any, **kwargs: Any) -> Any:
        """
        Execute an API call with rate limiting.

        Args:
            api_func: API function to call
            *args: Positional arguments for the API function
            **kwargs: Keyword arguments for the API function

        Returns:
            Result from the API function
        """
        async with self._lock:
            # Ensure rate limit
            time_since_last = time.monotonic() - self.last_request_time
            if self.last_request_time and time_since_last < self.time_between_requests:
                delay = self.time_between_requests - time_since_last
                logger.debug(f"Rate limiting: waiting {delay:.2f}s before API call")
                await asyncio.sleep(delay)
            self.last_request_time = time.monotonic()

        logger.debug(f"Making API call: {api_func.__name__ if hasattr(api_func, '__name__') else api_func}")
        return await api_func(*args, **kwargs)
