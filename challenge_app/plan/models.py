"""
Plan data models for the compounding challenge.

The calendar is an owned, mutable structure: the recalculator writes the
financial fields of each TradingDay in place and journal edits address
days by number, so the document is never cloned to apply a change.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, Optional

PNL_SIGNS = ("+", "-")

DEFAULT_RULE_TEXTS = (
    "MAINTAIN DISCIPLINE: ADHERE TO THE PLAN",
    "VALIDATE STRATEGY: CONFIRM ENTRY/EXIT CRITERIA",
    "ASSESS MACRO TREND: CONSULT HIGHER TIMEFRAMES",
    "RISK PROTOCOL: MAX 2% CAPITAL PER ENGAGEMENT",
)


@dataclass
class ChecklistRule:
    """A single pre-trade checklist item."""
    text: str
    checked: bool = False


def default_rules() -> list[ChecklistRule]:
    """Fresh, unchecked copy of the default checklist."""
    return [ChecklistRule(text=text) for text in DEFAULT_RULE_TEXTS]


def parse_amount(value: object) -> float:
    """Numeric value of a journal amount; blank or non-numeric text is 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip() or 0)
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class PlanConfig:
    """User-entered challenge parameters (may be invalid)."""
    initial_capital: float
    final_target: float
    tenure: int


@dataclass(frozen=True)
class SanitizedPlanConfig:
    """Plan parameters after the fallback table has been applied."""
    initial_capital: float
    final_target: float
    tenure: int
    daily_rate: float
    fallbacks_applied: tuple[str, ...] = ()


@dataclass
class TradingDay:
    """One trading day of the plan: derived financials plus journal fields."""

    day: int
    date: date

    # Derived by the recalculator only
    capital: float = 0                 # Start-of-day capital (rounded)
    target: float = 0                  # Ideal end-of-day capital (rounded)
    profit: float = 0                  # Ideal profit for the day (rounded)
    daily_rate: float = 0.0            # Rate still required from ``capital``

    # Journal fields, opaque to the recalculator
    achieved: bool = False
    pnl_sign: str = "+"
    actual: str = ""                   # Absolute amount, "" until recorded
    winning_trades: str = ""
    losing_trades: str = ""
    logic: str = ""
    rules: list[ChecklistRule] = field(default_factory=default_rules)

    @property
    def is_recorded(self) -> bool:
        return self.actual != ""

    @property
    def signed_outcome(self) -> Optional[float]:
        """Signed result of the day, None when nothing has been recorded."""
        if not self.is_recorded:
            return None
        amount = parse_amount(self.actual)
        return amount if self.pnl_sign == "+" else -amount

    def reset_financials(self) -> None:
        self.capital = 0
        self.target = 0
        self.profit = 0
        self.daily_rate = 0.0


@dataclass
class MonthGroup:
    """Display grouping of consecutive trading days."""
    id: int
    month_name: str
    days: list[TradingDay] = field(default_factory=list)


@dataclass
class PlanDocument:
    """The complete persisted challenge document."""

    config: PlanConfig
    months: list[MonthGroup] = field(default_factory=list)
    hidden_symbols: list[str] = field(default_factory=list)
    version: int = 2

    def iter_days(self) -> Iterator[TradingDay]:
        """All trading days in calendar order."""
        for month in self.months:
            yield from month.days

    def day_count(self) -> int:
        return sum(len(month.days) for month in self.months)

    def find_day(self, day_number: int) -> Optional[tuple[int, int, TradingDay]]:
        """Locate a day by its 1-based number."""
        for month_index, month in enumerate(self.months):
            for day_index, day in enumerate(month.days):
                if day.day == day_number:
                    return month_index, day_index, day
        return None

    def find_date(self, when: date) -> Optional[tuple[int, int, TradingDay]]:
        """Locate a day by its calendar date."""
        for month_index, month in enumerate(self.months):
            for day_index, day in enumerate(month.days):
                if day.date == when:
                    return month_index, day_index, day
        return None
