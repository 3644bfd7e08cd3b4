"""Error taxonomy and retry utilities for the Easy Apply engine."""

import asyncio
import logging
import traceback
from typing import Dict, Any, Optional, Callable, Awaitable
from enum import Enum

logger = logging.getLogger(__name__)

class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class ErrorCategory(Enum):
    """Categories of errors that can occur while filling an application."""
    LOOKUP_MISS = "lookup_miss"
    INTERACTION = "interaction"
    SERVICE = "service"
    STRUCTURAL_STALL = "structural_stall"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"
    BROWSER = "browser"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"

class ApplicationError(Exception):
    """
    Base exception for engine errors with additional context.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        retry_count: int = 0,
        recoverable: bool = True
    ):
        """
        Initialize an application error.

        Args:
            message: Error message
            category: Error category
            severity: Error severity
            context: Additional context information
            retry_count: Number of retries attempted
            recoverable: Whether the error is potentially recoverable
        """
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.retry_count = retry_count
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the error to a dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context,
            "retry_count": self.retry_count,
            "recoverable": self.recoverable,
            "traceback": "".join(traceback.format_exception(type(self), self, self.__traceback__))
        }

def error_to_dict(error: BaseException) -> Dict[str, Any]:
    """
    Serialize any exception for attempt records.

    Args:
        error: The exception to serialize

    Returns:
        Dictionary representation; ApplicationError keeps its own fields
    """
    if isinstance(error, ApplicationError):
        return error.to_dict()
    return ApplicationError(
        str(error) or error.__class__.__name__,
        category=ErrorCategory.UNKNOWN,
        severity=ErrorSeverity.HIGH,
        context={"type": error.__class__.__name__},
    ).to_dict()

class RetryStrategy:
    """
    Retry an async operation with a linearly growing delay.

    The operation returns a truthy value on success. Exceptions count as
    failed attempts and are logged, never raised.
    """

    def __init__(self, max_retries: int = 3, delay: float = 1.0):
        """
        Initialize the retry strategy.

        Args:
            max_retries: Maximum number of attempts
            delay: Base delay between attempts in seconds
        """
        self.max_retries = max_retries
        self.delay = delay

    async def run(self, operation: Callable[[], Awaitable[Any]], token=None, description: str = "operation") -> Any:
        """
        Run the operation until it succeeds, retries run out, or the token is cancelled.

        Args:
            operation: Zero-argument coroutine function
            token: Optional CancellationToken checked between attempts
            description: Name used in log messages

        Returns:
            The first truthy result, or None
        """
        for attempt in range(self.max_retries):
            if token is not None and token.cancelled:
                logger.info(f"Retry of {description} abandoned: cancelled")
                return None
            try:
                result = await operation()
                if result:
                    return result
                logger.debug(f"{description} attempt {attempt + 1}/{self.max_retries} returned nothing")
            except ApplicationError as e:
                e.retry_count = attempt + 1
                logger.warning(f"{description} attempt {attempt + 1}/{self.max_retries} failed: {e.message}")
            except Exception as e:
                logger.warning(f"{description} attempt {attempt + 1}/{self.max_retries} failed: {e}")

            if attempt < self.max_retries - 1:
                current_delay = self.delay * (attempt + 1)
                if token is not None:
                    if not await token.sleep(current_delay):
                        return None
                else:
                    await asyncio.sleep(current_delay)

        logger.warning(f"Maximum retries ({self.max_retries}) exceeded for {description}")
        return None
