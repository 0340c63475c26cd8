"""
Calendar builder for the challenge plan.

Turns a tenure into a sequence of weekday trading dates starting at a fixed
anchor, grouped into months of 22 trading days. Journal content recorded
against a date survives a rebuild; financial fields never do.
"""

from datetime import date
from typing import Iterable, Optional, Union

import structlog

from ..config.defaults import PlanParams
from ..errors import InvalidConfigError, MissingRulesError
from ..logging.config import get_plan_logger
from ..utils.time import month_label, next_trading_day, parse_date, roll_to_trading_day
from .models import ChecklistRule, MonthGroup, TradingDay, default_rules

logger = structlog.get_logger(__name__)
plan_logger = get_plan_logger(__name__)

_DEFAULTS = PlanParams()
ANCHOR_DATE = parse_date(_DEFAULTS.anchor_date)


def trading_dates(tenure: int, anchor: date = ANCHOR_DATE) -> list[date]:
    """
    Generate ``tenure`` consecutive weekday dates from the anchor.

    Args:
        tenure: Number of trading days to produce
        anchor: First candidate date (weekends roll forward to Monday)

    Returns:
        Ordered list of trading dates
    """
    dates = []
    current = roll_to_trading_day(anchor)
    while len(dates) < tenure:
        dates.append(current)
        current = next_trading_day(current)
    return dates


def _index_previous(previous_months: Optional[Iterable[MonthGroup]]) -> dict[date, TradingDay]:
    previous_days: dict[date, TradingDay] = {}
    for month in previous_months or []:
        for day in month.days:
            previous_days[day.date] = day
    return previous_days


def _carry_forward(day_number: int, when: date, previous: Optional[TradingDay]) -> TradingDay:
    """Create a fresh day, copying the journal fields of ``previous``."""
    if previous is None:
        return TradingDay(day=day_number, date=when)

    rules = previous.rules
    if not rules:
        error = MissingRulesError(
            "Day record has no checklist, injecting defaults",
            date=when.isoformat(),
            fallback="default_rules",
        )
        plan_logger.warning(
            "Recovered missing checklist",
            date=error.date,
            error_type=type(error).__name__,
            fallback=error.fallback,
        )
        rules = default_rules()

    return TradingDay(
        day=day_number,
        date=when,
        achieved=previous.achieved,
        pnl_sign=previous.pnl_sign,
        actual=previous.actual,
        winning_trades=previous.winning_trades,
        losing_trades=previous.losing_trades,
        logic=previous.logic,
        rules=[ChecklistRule(text=rule.text, checked=rule.checked) for rule in rules],
    )


def build_calendar(
    tenure: int,
    previous_months: Optional[Iterable[MonthGroup]] = None,
    anchor: Union[str, date] = ANCHOR_DATE,
    days_per_month: int = _DEFAULTS.trading_days_per_month,
) -> list[MonthGroup]:
    """
    Build the month/day structure of a plan.

    Args:
        tenure: Total number of trading days (must be positive)
        previous_months: Existing calendar whose journal entries are preserved
        anchor: Plan start date
        days_per_month: Trading days per display month

    Returns:
        Months with zeroed financial fields, ready for recalculation

    Raises:
        InvalidConfigError: If tenure is not positive
    """
    if tenure <= 0:
        raise InvalidConfigError(
            f"Tenure must be positive, got {tenure}",
            field="tenure",
            value=tenure,
        )

    previous_days = _index_previous(previous_months)
    months: list[MonthGroup] = []

    for index, when in enumerate(trading_dates(tenure, parse_date(anchor))):
        month_index = index // days_per_month
        if month_index == len(months):
            months.append(MonthGroup(id=month_index + 1, month_name=month_label(when)))

        months[month_index].days.append(
            _carry_forward(index + 1, when, previous_days.get(when))
        )

    logger.debug(
        "Built plan calendar",
        tenure=tenure,
        months=len(months),
        preserved_days=sum(1 for m in months for d in m.days if d.date in previous_days),
    )

    return months
