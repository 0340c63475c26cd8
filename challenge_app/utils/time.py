"""
Trading calendar and clock utilities.

Trading days are Monday to Friday. Plans are dated from a fixed anchor, and
"today" comes from an injectable clock so that journal settlement can be
replayed deterministically.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Union

SATURDAY = 5
SUNDAY = 6

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_trading_day(day: date) -> bool:
    """True for Monday through Friday."""
    return day.weekday() < SATURDAY


def roll_to_trading_day(day: date) -> date:
    """
    Move a weekend date forward to the following Monday.

    Args:
        day: Any calendar date

    Returns:
        The date itself if it is a weekday, otherwise the next Monday
    """
    if day.weekday() == SATURDAY:
        return day + timedelta(days=2)
    if day.weekday() == SUNDAY:
        return day + timedelta(days=1)
    return day


def next_trading_day(day: date) -> date:
    """First weekday strictly after ``day``."""
    candidate = day + timedelta(days=1)
    while not is_trading_day(candidate):
        candidate += timedelta(days=1)
    return candidate


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string (datetimes are truncated to their date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_date(day: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return day.isoformat()


def month_label(day: date) -> str:
    """Month grouping label, e.g. "November 2025"."""
    return day.strftime("%B %Y")


def trading_today(clock: Optional[Clock] = None) -> date:
    """
    Current trading date according to ``clock``.

    Weekends roll forward to Monday so that trades closed on a Saturday are
    settled against the next trading day.
    """
    now = (clock or utc_now)()
    return roll_to_trading_day(now.date())


def format_timestamp(ts: datetime) -> str:
    """ISO8601 timestamp for notifications and trade history."""
    return ts.isoformat()
