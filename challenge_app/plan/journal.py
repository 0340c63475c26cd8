"""
Journal editing and trade settlement against the plan document.

Edits address a day by its 1-based number and mutate the owned document in
place. Any edit that can move the actual-capital trajectory is followed by
an explicit recalculation; free-text edits are not.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

import structlog

from ..config.defaults import PlanParams
from ..errors import JournalEditError, MissingRulesError
from ..logging.config import get_plan_logger
from .models import PNL_SIGNS, PlanDocument, TradingDay, default_rules, parse_amount
from .recalculator import recalculate

logger = structlog.get_logger(__name__)
plan_logger = get_plan_logger(__name__)

TEXT_FIELDS = ("logic", "winning_trades", "losing_trades")

ChangeListener = Callable[[PlanDocument], None]


@dataclass(frozen=True)
class MonthAnalysis:
    """Aggregated journal figures for one display month."""
    pnl: float
    profit_days: int
    loss_days: int
    winning_trades: int
    losing_trades: int
    start_capital: float


def _format_amount(amount: float) -> str:
    """Two-decimal text used for settled trade totals."""
    return f"{abs(amount):.2f}"


def _exact_amount(amount: float) -> str:
    """Full-precision text of a typed outcome; whole numbers drop the ".0"."""
    value = abs(float(amount))
    return str(int(value)) if value.is_integer() else repr(value)



class JournalEditor:
    """Applies journal edits and realized trade results to a plan document."""

    def __init__(
        self,
        document: PlanDocument,
        today: Callable[[], date],
        defaults: PlanParams = PlanParams(),
        on_change: Optional[ChangeListener] = None,
    ) -> None:
        """
        Args:
            document: Plan document owned by the session
            today: Returns the current trading date
            defaults: Fallback table for recalculation
            on_change: Called with the document after every accepted edit
        """
        self.logger = logger
        self.document = document
        self.today = today
        self.defaults = defaults
        self.on_change = on_change

    def _day(self, day_number: int) -> TradingDay:
        located = self.document.find_day(day_number)
        if located is None:
            raise JournalEditError(
                f"No trading day numbered {day_number}",
                day_number=day_number,
            )
        return located[2]

    def _changed(self, recompute: bool) -> None:
        if recompute:
            recalculate(self.document, self.defaults)
        if self.on_change is not None:
            self.on_change(self.document)

    @staticmethod
    def _refresh_achieved(day: TradingDay) -> None:
        outcome = day.signed_outcome
        day.achieved = (outcome or 0.0) >= day.profit

    def set_journal_outcome(self, day_number: int, signed_amount: float) -> TradingDay:
        """
        Record the signed result of a day and recompute the trajectory.

        Args:
            day_number: 1-based trading day number
            signed_amount: Profit (positive) or loss (negative)

        Returns:
            The updated trading day
        """
        day = self._day(day_number)
        day.pnl_sign = "+" if signed_amount >= 0 else "-"
        day.actual = _exact_amount(signed_amount)
        self._refresh_achieved(day)

        self.logger.info(
            "Recorded journal outcome",
            day=day_number,
            date=day.date.isoformat(),
            signed_amount=signed_amount,
            achieved=day.achieved,
        )

        self._changed(recompute=True)
        return day

    def set_profit_input(self, day_number: int, raw_value: Any) -> TradingDay:
        """Store the raw amount typed for a day, keeping its current sign."""
        day = self._day(day_number)
        day.actual = "" if raw_value is None else str(raw_value)
        self._refresh_achieved(day)
        self._changed(recompute=True)
        return day

    def clear_outcome(self, day_number: int) -> TradingDay:
        """Forget the recorded result so the day reverts to the ideal path."""
        day = self._day(day_number)
        day.actual = ""
        day.achieved = False
        self._changed(recompute=True)
        return day

    def set_pnl_sign(self, day_number: int, sign: str) -> TradingDay:
        """Flip a day's result between profit ('+') and loss ('-')."""
        if sign not in PNL_SIGNS:
            raise JournalEditError(f"Invalid P&L sign: {sign!r}", day_number=day_number)

        day = self._day(day_number)
        day.pnl_sign = sign
        self._refresh_achieved(day)
        self._changed(recompute=True)
        return day

    def set_field(self, day_number: int, field_name: str, value: str) -> TradingDay:
        """Update a free-text journal field; financials are unaffected."""
        if field_name not in TEXT_FIELDS:
            raise JournalEditError(
                f"Field {field_name!r} is not an editable journal field",
                day_number=day_number,
            )

        day = self._day(day_number)
        setattr(day, field_name, "" if value is None else str(value))
        self._changed(recompute=False)
        return day

    def set_rule(self, day_number: int, rule_index: int, checked: bool) -> TradingDay:
        """Tick or untick a checklist item."""
        day = self._day(day_number)

        if not day.rules:
            error = MissingRulesError(
                "Day record has no checklist, injecting defaults",
                date=day.date.isoformat(),
                fallback="default_rules",
            )
            plan_logger.warning(
                "Recovered missing checklist",
                date=error.date,
                error_type=type(error).__name__,
                fallback=error.fallback,
            )
            day.rules = default_rules()

        if not 0 <= rule_index < len(day.rules):
            raise JournalEditError(
                f"Checklist has no rule at index {rule_index}",
                day_number=day_number,
            )

        day.rules[rule_index].checked = bool(checked)
        self._changed(recompute=False)
        return day

    def find_today(self) -> Optional[tuple[int, int, TradingDay]]:
        """Locate today's trading day, None when today is outside the plan."""
        return self.document.find_date(self.today())

    def apply_trade_result(self, realized_pnl: float) -> Optional[TradingDay]:
        """
        Fold a realized trade amount into today's recorded outcome.

        Args:
            realized_pnl: Signed realized profit or loss of a closed trade

        Returns:
            Today's updated day, or None when today is not part of the plan
            (the amount is dropped)
        """
        located = self.find_today()
        if located is None:
            self.logger.warning(
                "Trade settled outside the plan calendar, result not journaled",
                today=self.today().isoformat(),
                realized_pnl=realized_pnl,
            )
            return None

        day = located[2]
        current = parse_amount(day.actual)
        signed_current = current if day.pnl_sign == "+" else -current
        total = signed_current + realized_pnl

        day.pnl_sign = "+" if total >= 0 else "-"
        day.actual = _format_amount(total)
        day.achieved = total >= day.profit

        self.logger.info(
            "Settled trade into journal",
            day=day.day,
            date=day.date.isoformat(),
            realized_pnl=realized_pnl,
            day_total=total,
        )

        self._changed(recompute=True)
        return day

    def toggle_symbol(self, name: str) -> bool:
        """
        Hide a visible symbol or show a hidden one.

        Returns:
            True if the symbol is hidden after the call
        """
        hidden = self.document.hidden_symbols
        if name in hidden:
            hidden.remove(name)
            now_hidden = False
        else:
            hidden.append(name)
            now_hidden = True

        self._changed(recompute=False)
        return now_hidden

    def month_analysis(self, month_index: int) -> MonthAnalysis:
        """Aggregate the recorded results of one month."""
        if not 0 <= month_index < len(self.document.months):
            return MonthAnalysis(0.0, 0, 0, 0, 0, self.document.config.initial_capital)

        month = self.document.months[month_index]
        completed = [day for day in month.days if day.is_recorded]

        pnl = sum(day.signed_outcome or 0.0 for day in completed)
        nonzero = [day for day in completed if day.actual != "0"]

        if month_index == 0:
            start_capital = self.document.config.initial_capital
        else:
            start_capital = month.days[0].capital if month.days else 0

        return MonthAnalysis(
            pnl=pnl,
            profit_days=sum(1 for day in nonzero if day.pnl_sign == "+"),
            loss_days=sum(1 for day in nonzero if day.pnl_sign == "-"),
            winning_trades=sum(int(parse_amount(day.winning_trades)) for day in completed),
            losing_trades=sum(int(parse_amount(day.losing_trades)) for day in completed),
            start_capital=start_capital,
        )
