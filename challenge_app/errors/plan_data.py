"""
Plan data error classifications.

These conditions are always recovered locally: the documented fallback is
applied, a warning is logged and the plan stays internally consistent.
They are never surfaced to the user as a failure.
"""

from typing import Optional, Dict, Any


class PlanDataError(Exception):
    """Base class for plan data issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 fallback: Optional[Any] = None):
        super().__init__(message)
        self.context = context or {}
        self.fallback = fallback
        self.recoverable = True


class InvalidConfigError(PlanDataError):
    """Non-positive tenure or capital, or a target not above the capital."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class DegenerateRateError(PlanDataError):
    """Compounding rate is NaN, infinite or below -50%."""

    def __init__(self, message: str, rate: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.rate = rate


class MissingRulesError(PlanDataError):
    """Legacy day record without a checklist."""

    def __init__(self, message: str, date: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.date = date


class JournalEditError(PlanDataError):
    """Journal edit addressed a day, rule or field that does not exist."""

    def __init__(self, message: str, day_number: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.day_number = day_number
        self.recoverable = False


class MalformedDocumentError(PlanDataError):
    """Persisted plan document cannot be parsed into a plan."""

    def __init__(self, message: str, raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.recoverable = False
