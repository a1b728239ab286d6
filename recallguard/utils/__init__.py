# Utils Package
"""
Cross-cutting utilities.

- error_handling.py: Exception taxonomy, delivery failure classification
- logging_context.py: Run/item correlation for log lines
"""

from recallguard.utils.error_handling import (
    RecallGuardError,
    ProviderUnavailableError,
    DuplicateAlertError,
    PushDeliveryError,
    TransientDeliveryError,
    TerminalSubscriptionError,
    TERMINAL_STATUS_CODES,
    classify_delivery_failure,
    classify_error,
    ErrorContext,
)
from recallguard.utils.logging_context import (
    CorrelationIdFilter,
    LoggingContext,
    item_scope,
    setup_logging,
)

__all__ = [
    "RecallGuardError",
    "ProviderUnavailableError",
    "DuplicateAlertError",
    "PushDeliveryError",
    "TransientDeliveryError",
    "TerminalSubscriptionError",
    "TERMINAL_STATUS_CODES",
    "classify_delivery_failure",
    "classify_error",
    "ErrorContext",
    "CorrelationIdFilter",
    "LoggingContext",
    "item_scope",
    "setup_logging",
]
