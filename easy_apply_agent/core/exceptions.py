"""Custom exceptions for the Easy Apply engine."""

from easy_apply_agent.utils.error_handling import ApplicationError, ErrorCategory, ErrorSeverity


class InvalidSelectorError(ApplicationError):
    """Raised by node adapters when a query expression cannot be parsed."""

    def __init__(self, selector: str, reason: str = ""):
        super().__init__(
            f"Invalid selector '{selector}'{': ' + reason if reason else ''}",
            category=ErrorCategory.LOOKUP_MISS,
            severity=ErrorSeverity.LOW,
            context={"selector": selector},
        )
        self.selector = selector


class InteractionFailure(ApplicationError):
    """A commit action (fill, click, select, toggle) threw."""

    def __init__(self, message: str, label: str = "", **context):
        super().__init__(
            message,
            category=ErrorCategory.INTERACTION,
            severity=ErrorSeverity.MEDIUM,
            context={"label": label, **context},
        )


class ServiceFailure(ApplicationError):
    """The external answer service failed or returned nothing usable."""

    def __init__(self, message: str, question: str = ""):
        super().__init__(
            message,
            category=ErrorCategory.SERVICE,
            severity=ErrorSeverity.LOW,
            context={"question": question},
        )


class BudgetExhausted(ApplicationError):
    """A step or retry ceiling was reached; the attempt is over."""

    def __init__(self, message: str, steps: int = 0):
        super().__init__(
            message,
            category=ErrorCategory.BUDGET_EXHAUSTED,
            severity=ErrorSeverity.HIGH,
            context={"steps": steps},
            recoverable=False,
        )


class BrowserError(ApplicationError):
    """The browser could not be started or navigated."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(
            message,
            category=ErrorCategory.BROWSER,
            severity=ErrorSeverity.CRITICAL,
            context={"url": url},
            recoverable=False,
        )
