"""
Plan recalculation: required compounding rate, ideal path and actual path.

``recalculate`` is the only writer of the financial fields of a TradingDay.
It is a pure function of the plan config and the recorded outcomes, so
running it twice on the same document yields identical output.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from ..config.defaults import PlanParams
from ..errors import DegenerateRateError, InvalidConfigError, PlanDataError
from ..logging.config import get_plan_logger, log_plan_recalculation
from .models import MonthGroup, PlanConfig, PlanDocument, SanitizedPlanConfig

plan_logger = get_plan_logger(__name__)


@dataclass(frozen=True)
class IdealStep:
    """Rounded target and profit of one step of the ideal path."""
    target: float
    profit: float


def round_half_up(value: float) -> float:
    """Round to the nearest integer with halves going toward +infinity."""
    return float(math.floor(value + 0.5))


def _as_number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _recover(error: PlanDataError) -> None:
    """Log a recovered plan data condition."""
    plan_logger.warning(
        "Recovered invalid plan input",
        error=str(error),
        error_type=type(error).__name__,
        fallback=error.fallback,
        context=error.context,
    )


def required_daily_rate(initial_capital: float, final_target: float, tenure: int) -> float:
    """
    Daily compounding rate that grows ``initial_capital`` into ``final_target``.

    r = (final_target / initial_capital) ** (1 / tenure) - 1

    Returns NaN instead of raising when the inputs cannot produce a rate.
    """
    try:
        ratio = final_target / initial_capital
        if ratio < 0:
            # Fractional powers of a negative ratio are complex
            return math.nan
        return ratio ** (1.0 / tenure) - 1.0
    except (ZeroDivisionError, OverflowError):
        return math.nan


def sanitize_config(config: PlanConfig, defaults: PlanParams = PlanParams()) -> SanitizedPlanConfig:
    """
    Apply the fallback table to a plan config.

    | condition                        | fallback                          |
    |----------------------------------|-----------------------------------|
    | tenure <= 0                      | defaults.tenure_days              |
    | initial_capital <= 0             | defaults.initial_capital          |
    | final_target <= initial_capital  | initial_capital * target_multiplier |
    | rate NaN, infinite or < min rate | defaults.fallback_daily_rate      |

    Args:
        config: Raw plan configuration
        defaults: Fallback values

    Returns:
        SanitizedPlanConfig with the names of the fallbacks that fired
    """
    fallbacks = []

    tenure = _as_number(config.tenure)
    if tenure is None or tenure <= 0:
        _recover(InvalidConfigError(
            "Tenure must be positive",
            field="tenure", value=config.tenure, fallback=defaults.tenure_days,
        ))
        tenure = defaults.tenure_days
        fallbacks.append("tenure")
    tenure = int(tenure)

    initial_capital = _as_number(config.initial_capital)
    if initial_capital is None or initial_capital <= 0:
        _recover(InvalidConfigError(
            "Initial capital must be positive",
            field="initial_capital", value=config.initial_capital,
            fallback=defaults.initial_capital,
        ))
        initial_capital = defaults.initial_capital
        fallbacks.append("initial_capital")

    final_target = _as_number(config.final_target)
    if final_target is None or final_target <= initial_capital:
        forced = initial_capital * defaults.target_multiplier
        _recover(InvalidConfigError(
            "Final target must exceed initial capital",
            field="final_target", value=config.final_target, fallback=forced,
        ))
        final_target = forced
        fallbacks.append("final_target")

    daily_rate = required_daily_rate(initial_capital, final_target, tenure)
    if not math.isfinite(daily_rate) or daily_rate < defaults.min_daily_rate:
        _recover(DegenerateRateError(
            "Compounding rate is degenerate",
            rate=daily_rate, fallback=defaults.fallback_daily_rate,
            context={"initial_capital": initial_capital, "final_target": final_target,
                     "tenure": tenure},
        ))
        daily_rate = defaults.fallback_daily_rate
        fallbacks.append("daily_rate")

    return SanitizedPlanConfig(
        initial_capital=initial_capital,
        final_target=final_target,
        tenure=tenure,
        daily_rate=daily_rate,
        fallbacks_applied=tuple(fallbacks),
    )


def build_ideal_path(initial_capital: float, daily_rate: float, tenure: int) -> list[IdealStep]:
    """
    Compound ``initial_capital`` forward ``tenure`` steps at ``daily_rate``.

    Targets and profits are rounded per step; the running capital is not.
    """
    path = []
    planned_capital = initial_capital
    for _ in range(tenure):
        planned_target = planned_capital * (1 + daily_rate)
        path.append(IdealStep(
            target=round_half_up(planned_target),
            profit=round_half_up(planned_target - planned_capital),
        ))
        planned_capital = planned_target
    return path


def recalculate(document: PlanDocument, defaults: PlanParams = PlanParams()) -> list[MonthGroup]:
    """
    Recompute every derived financial field of the plan in place.

    Days without a recorded outcome are assumed to hit their ideal target
    exactly, so unfilled history does not penalize later days. If the
    calendar is longer than the ideal path the last ideal step is repeated.

    Args:
        document: Plan document whose months are updated
        defaults: Fallback table

    Returns:
        The document's months (same objects, updated)
    """
    sanitized = sanitize_config(document.config, defaults)
    ideal_path = build_ideal_path(
        sanitized.initial_capital, sanitized.daily_rate, sanitized.tenure
    )

    actual_capital = sanitized.initial_capital
    recorded_days = 0

    for index, day in enumerate(document.iter_days()):
        if index < len(ideal_path):
            step = ideal_path[index]
        elif ideal_path:
            step = ideal_path[-1]
        else:
            step = IdealStep(target=actual_capital, profit=0)

        day.target = step.target
        day.profit = step.profit
        day.capital = round_half_up(actual_capital)

        if actual_capital > 0 and day.target > actual_capital:
            day.daily_rate = day.target / actual_capital - 1
        else:
            day.daily_rate = 0.0

        outcome = day.signed_outcome
        if outcome is not None:
            actual_capital += outcome
            recorded_days += 1
        else:
            actual_capital = day.target

    log_plan_recalculation(
        plan_logger,
        tenure=sanitized.tenure,
        daily_rate=sanitized.daily_rate,
        fallbacks=sanitized.fallbacks_applied,
        context={"days": document.day_count(), "recorded_days": recorded_days},
    )

    return document.months
