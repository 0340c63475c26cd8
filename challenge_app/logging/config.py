"""
Centralized logging configuration for the challenge engine.

This module provides standardized logging configuration using structlog
for all components. Plan recalculations and ledger mutations are logged
through the helpers below so that every audit record has the same shape.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_plan_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound to the plan subsystem.

    Used by the calendar builder, the recalculator and the journal editor.
    """
    return get_logger(name).bind(subsystem="plan")


def get_ledger_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound to the position ledger subsystem.

    Every open, close and forced close is written through this logger so
    the trade history can be reconstructed from the logs alone.
    """
    return get_logger(name).bind(
        subsystem="ledger",
        audit_trail=True
    )


def log_trade_event(
    logger: FilteringBoundLogger,
    event_type: str,
    position_id: str,
    instrument: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a position lifecycle event with standardized format.

    Args:
        logger: Structlog logger instance
        event_type: "position_opened", "position_closed", "order_rejected", ...
        position_id: ID of the position (empty for rejected opens)
        instrument: Instrument name
        context: Additional context data
    """
    bound_logger = logger.bind(
        trade_event=event_type,
        position_id=position_id,
        instrument=instrument,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if event_type == "order_rejected":
        bound_logger.warning("Trade event")
    else:
        bound_logger.info("Trade event")


def log_plan_recalculation(
    logger: FilteringBoundLogger,
    tenure: int,
    daily_rate: float,
    fallbacks: tuple[str, ...],
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a completed plan recalculation.

    Args:
        logger: Structlog logger instance
        tenure: Sanitized tenure used for the ideal path
        daily_rate: Required compounding rate
        fallbacks: Names of the fallback rules that were applied
        context: Additional context data
    """
    bound_logger = logger.bind(
        tenure=tenure,
        daily_rate=daily_rate,
        fallbacks=list(fallbacks),
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if fallbacks:
        bound_logger.warning("Plan recalculated with fallbacks")
    else:
        bound_logger.debug("Plan recalculated")
