"""
Error classification system for the challenge engine.

Plan data errors are recovered locally with documented fallbacks, trading
rejections are surfaced to the user, and system failures are left to the
caller.
"""

from .plan_data import (
    PlanDataError,
    InvalidConfigError,
    DegenerateRateError,
    MissingRulesError,
    JournalEditError,
    MalformedDocumentError,
)
from .trading import (
    TradingRejectedError,
    NoQuoteError,
    InsufficientMarginError,
    InvalidOrderError,
    UnknownPositionError,
)
from .system_failures import (
    SystemFailureError,
    PersistenceError,
    GracefulDegradationError,
    AnnotationError,
)

__all__ = [
    # Plan Data Errors
    "PlanDataError",
    "InvalidConfigError",
    "DegenerateRateError",
    "MissingRulesError",
    "JournalEditError",
    "MalformedDocumentError",
    # Trading Rejections
    "TradingRejectedError",
    "NoQuoteError",
    "InsufficientMarginError",
    "InvalidOrderError",
    "UnknownPositionError",
    # System Failures
    "SystemFailureError",
    "PersistenceError",
    "GracefulDegradationError",
    "AnnotationError",
]
