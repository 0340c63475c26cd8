"""
Trading rejection error classifications.

A rejection is surfaced to the user; the requested operation is not
performed and the position ledger is left exactly as it was.
"""

from typing import Optional, Dict, Any


class TradingRejectedError(Exception):
    """Base class for user-visible order rejections."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class NoQuoteError(TradingRejectedError):
    """Action requested before any quote exists for the instrument."""

    def __init__(self, message: str, instrument: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.instrument = instrument


class InsufficientMarginError(TradingRejectedError):
    """Margin required by a new position exceeds the free margin."""

    def __init__(self, message: str, margin_required: Optional[float] = None,
                 free_margin: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.margin_required = margin_required
        self.free_margin = free_margin


class InvalidOrderError(TradingRejectedError):
    """Order parameters are outside the accepted domain."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class UnknownPositionError(TradingRejectedError):
    """Close requested for a position that is not open."""

    def __init__(self, message: str, position_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.position_id = position_id
