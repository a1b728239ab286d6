"""
Error Handling Utilities

Provides:
- Exception taxonomy for the matching engine
- Push delivery failure classification
- Error classification for logging
- Isolation context so one failing item never aborts a batch

Nothing in this package is fatal to the process: provider failures degrade
to documented fallbacks, delivery failures are logged or pruned, duplicate
alerts are skipped.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


# HTTP statuses meaning a push subscription can never succeed again
TERMINAL_STATUS_CODES = frozenset({401, 404, 410})


class RecallGuardError(Exception):
    """Base class for engine errors."""
    pass


class ProviderUnavailableError(RecallGuardError):
    """Embedding, rerank or text-generation provider missing or failing."""
    pass


class DuplicateAlertError(RecallGuardError):
    """Raised by storage when an alert for (category, item, recall) already exists."""

    def __init__(self, category: str, item_id: int, recall_id: str):
        self.category = category
        self.item_id = item_id
        self.recall_id = recall_id
        super().__init__(
            f"Alert already exists for {category} item {item_id} / recall {recall_id}"
        )


class PushDeliveryError(RecallGuardError):
    """A push send failed. `status_code` is None for network errors and timeouts."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_terminal(self) -> bool:
        return self.status_code in TERMINAL_STATUS_CODES


class TransientDeliveryError(PushDeliveryError):
    """Non-terminal failure; subscription retained, send not retried."""
    pass


class TerminalSubscriptionError(PushDeliveryError):
    """Subscription expired or unauthorized; it must be removed."""
    pass


def classify_delivery_failure(
    status_code: Optional[int],
    message: str = "Push failed",
) -> PushDeliveryError:
    """
    Map a push send failure to the matching exception class.

    Args:
        status_code: HTTP status from the push service, None for network errors.
        message: Error description.

    Returns:
        TerminalSubscriptionError for expired/unauthorized subscriptions,
        TransientDeliveryError otherwise.
    """
    if status_code in TERMINAL_STATUS_CODES:
        return TerminalSubscriptionError(message, status_code=status_code)
    return TransientDeliveryError(message, status_code=status_code)


def classify_error(error: Exception) -> str:
    """
    Classify an error for logging and metrics labels.

    Args:
        error: Exception to classify.

    Returns:
        Error category string.
    """
    if isinstance(error, ProviderUnavailableError):
        return "provider"
    if isinstance(error, PushDeliveryError):
        return "terminal_delivery" if error.is_terminal else "delivery"

    error_name = type(error).__name__.lower()
    error_msg = str(error).lower()

    if any(x in error_name for x in ["connection", "network", "socket", "connect"]):
        return "network"
    if "timeout" in error_name or "timeout" in error_msg:
        return "timeout"
    if any(x in error_msg for x in ["401", "403", "unauthorized"]):
        return "auth"
    if "rate" in error_msg or "429" in error_msg:
        return "rate_limit"
    if "validation" in error_name:
        return "validation"

    return "unknown"


class ErrorContext:
    """
    Async context manager isolating a unit of work.

    Usage:
        async with ErrorContext("match_item:42", suppress=True) as ctx:
            await risky_operation()

        if ctx.failed:
            report.failed += 1
    """

    def __init__(
        self,
        operation_name: str,
        suppress: bool = False,
    ):
        self.operation_name = operation_name
        self.suppress = suppress
        self.error: Optional[Exception] = None
        self.error_category: Optional[str] = None
        self.failed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_val is not None and isinstance(exc_val, Exception):
            self.failed = True
            self.error = exc_val
            self.error_category = classify_error(exc_val)

            logger.error(
                f"[ErrorContext:{self.operation_name}] "
                f"Category: {self.error_category}, Error: {exc_val}"
            )

            return self.suppress
        return False
