"""
System failure error classifications.

These exceptions represent failures outside the core's control that the
caller has to deal with, plus degraded-mode conditions the core tolerates.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class PersistenceError(SystemFailureError):
    """File system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class GracefulDegradationError(Exception):
    """Errors that allow continued operation with reduced functionality."""

    def __init__(self, message: str, degraded_functionality: Optional[str] = None,
                 fallback_strategy: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.degraded_functionality = degraded_functionality
        self.fallback_strategy = fallback_strategy
        self.allows_degradation = True


class AnnotationError(GracefulDegradationError):
    """A chart annotation could not be drawn, moved or removed."""

    def __init__(self, message: str, position_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality="chart_annotation",
            fallback_strategy="ignore",
            **kwargs
        )
        self.position_id = position_id
