"""Tests for the plan calendar builder."""

from datetime import date

import pytest

from challenge_app.errors import InvalidConfigError
from challenge_app.plan.calendar import build_calendar, trading_dates
from challenge_app.plan.models import ChecklistRule, DEFAULT_RULE_TEXTS, MonthGroup, TradingDay


class TestTradingDates:
    """Weekday date generation."""

    def test_starts_at_anchor_monday(self):
        dates = trading_dates(3, date(2025, 11, 17))
        assert dates == [date(2025, 11, 17), date(2025, 11, 18), date(2025, 11, 19)]

    def test_skips_weekends(self):
        dates = trading_dates(7, date(2025, 11, 17))
        assert date(2025, 11, 22) not in dates
        assert date(2025, 11, 23) not in dates
        assert dates[5] == date(2025, 11, 24)
        assert all(d.weekday() < 5 for d in dates)

    def test_weekend_anchor_rolls_to_monday(self):
        assert trading_dates(1, date(2025, 11, 15))[0] == date(2025, 11, 17)
        assert trading_dates(1, date(2025, 11, 16))[0] == date(2025, 11, 17)


class TestBuildCalendar:
    """Month grouping and journal preservation."""

    def test_default_tenure_structure(self):
        months = build_calendar(66)

        assert len(months) == 3
        assert [m.id for m in months] == [1, 2, 3]
        assert all(len(m.days) == 22 for m in months)

        days = [d for m in months for d in m.days]
        assert [d.day for d in days] == list(range(1, 67))
        assert days[0].date == date(2025, 11, 17)

    def test_month_labels_use_first_day(self):
        months = build_calendar(30)

        assert months[0].month_name == "November 2025"
        assert months[1].days[0].date == date(2025, 12, 17)
        assert months[1].month_name == "December 2025"
        assert len(months[1].days) == 8

    def test_new_days_have_default_checklist(self):
        day = build_calendar(1)[0].days[0]

        assert [rule.text for rule in day.rules] == list(DEFAULT_RULE_TEXTS)
        assert not any(rule.checked for rule in day.rules)
        assert day.actual == ""
        assert day.pnl_sign == "+"

    def test_non_positive_tenure_rejected(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            build_calendar(0)
        assert exc_info.value.field == "tenure"

        with pytest.raises(InvalidConfigError):
            build_calendar(-5)

    def test_journal_fields_carried_forward_by_date(self):
        previous = build_calendar(5)
        day = previous[0].days[1]
        day.actual = "250.00"
        day.pnl_sign = "-"
        day.achieved = False
        day.logic = "faded the open"
        day.winning_trades = "1"
        day.losing_trades = "3"
        day.rules[0].checked = True
        day.capital = 12345
        day.target = 99999

        rebuilt = build_calendar(10, previous)
        carried = rebuilt[0].days[1]

        assert carried.date == date(2025, 11, 18)
        assert carried.actual == "250.00"
        assert carried.pnl_sign == "-"
        assert carried.logic == "faded the open"
        assert carried.winning_trades == "1"
        assert carried.losing_trades == "3"
        assert carried.rules[0].checked is True
        # Financials are reset for the recalculator
        assert carried.capital == 0
        assert carried.target == 0

    def test_carried_rules_are_copies(self):
        previous = build_calendar(2)
        rebuilt = build_calendar(2, previous)

        rebuilt[0].days[0].rules[0].checked = True
        assert previous[0].days[0].rules[0].checked is False

    def test_shrinking_tenure_drops_later_days(self):
        previous = build_calendar(10)
        previous[0].days[9].actual = "100"

        rebuilt = build_calendar(5, previous)
        assert sum(len(m.days) for m in rebuilt) == 5

    def test_missing_rules_get_defaults(self):
        legacy = TradingDay(day=1, date=date(2025, 11, 17), actual="10", rules=[])
        previous = [MonthGroup(id=1, month_name="November 2025", days=[legacy])]

        rebuilt = build_calendar(1, previous)
        rules = rebuilt[0].days[0].rules

        assert len(rules) == 4
        assert all(isinstance(rule, ChecklistRule) for rule in rules)
        assert rebuilt[0].days[0].actual == "10"

    def test_custom_anchor(self):
        months = build_calendar(2, anchor="2026-01-05")
        assert months[0].days[0].date == date(2026, 1, 5)
        assert months[0].month_name == "January 2026"
