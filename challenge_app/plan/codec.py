"""
Plan document normalization to and from the persisted JSON shape.

The persisted document uses camelCase keys:

    {initialCapital, finalTarget, tenure,
     months: [{id, monthName, days: [{day, date, capital, target, profit,
               dailyRate, achieved, pnlSign, actual, winningTrades,
               losingTrades, logic, rules: [{text, checked}]}]}],
     hiddenSymbols, version}

Loading is tolerant: missing top-level fields fall back to defaults and
legacy days without a checklist receive the default one.
"""

import math
from typing import Any, Optional, Union

import orjson
import structlog

from ..config.defaults import PlanParams
from ..errors import MalformedDocumentError, MissingRulesError
from ..logging.config import get_plan_logger
from ..utils.time import format_date, parse_date
from .models import (
    PNL_SIGNS,
    ChecklistRule,
    MonthGroup,
    PlanConfig,
    PlanDocument,
    TradingDay,
    default_rules,
)

logger = structlog.get_logger(__name__)
plan_logger = get_plan_logger(__name__)


def _amount_text(value: Any) -> str:
    """Journal amounts are kept as text; numbers are stored without a trailing .0."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _number(value: Any, default: float = 0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _whole_number(value: Any, default: int, field_name: str) -> int:
    number = _number(value, default)
    if not math.isfinite(number):
        raise MalformedDocumentError(
            f"{field_name} must be a finite number", raw_data=str(value)[:100]
        )
    return int(number)


def _rules_from_list(raw_rules: Any, date_str: str) -> list[ChecklistRule]:
    if not raw_rules or not isinstance(raw_rules, list):
        error = MissingRulesError(
            "Legacy day record without checklist",
            date=date_str,
            fallback="default_rules",
        )
        plan_logger.warning(
            "Recovered missing checklist",
            date=error.date,
            error_type=type(error).__name__,
            fallback=error.fallback,
        )
        return default_rules()

    return [
        ChecklistRule(text=str(rule.get("text", "")), checked=bool(rule.get("checked", False)))
        for rule in raw_rules
        if isinstance(rule, dict)
    ]


def day_from_dict(raw: dict[str, Any]) -> TradingDay:
    """Normalize one persisted day record."""
    if not isinstance(raw, dict):
        raise MalformedDocumentError(
            f"Day record must be an object, got {type(raw).__name__}", raw_data=str(raw)[:100]
        )
    if "date" not in raw:
        raise MalformedDocumentError("Day record missing date", raw_data=str(raw)[:100])

    try:
        when = parse_date(raw["date"])
    except ValueError as e:
        raise MalformedDocumentError(f"Invalid day date: {e}", raw_data=str(raw)[:100])

    pnl_sign = raw.get("pnlSign", "+")
    if pnl_sign not in PNL_SIGNS:
        pnl_sign = "+"

    return TradingDay(
        day=_whole_number(raw.get("day"), 0, "day"),
        date=when,
        capital=_number(raw.get("capital")),
        target=_number(raw.get("target")),
        profit=_number(raw.get("profit")),
        daily_rate=_number(raw.get("dailyRate")),
        achieved=bool(raw.get("achieved", False)),
        pnl_sign=pnl_sign,
        actual=_amount_text(raw.get("actual", "")),
        winning_trades=_amount_text(raw.get("winningTrades", "")),
        losing_trades=_amount_text(raw.get("losingTrades", "")),
        logic=str(raw.get("logic") or ""),
        rules=_rules_from_list(raw.get("rules"), str(raw["date"])),
    )


def day_to_dict(day: TradingDay) -> dict[str, Any]:
    """Serialize one trading day to the persisted shape."""
    return {
        "day": day.day,
        "date": format_date(day.date),
        "capital": day.capital,
        "target": day.target,
        "profit": day.profit,
        "dailyRate": day.daily_rate,
        "achieved": day.achieved,
        "pnlSign": day.pnl_sign,
        "actual": day.actual,
        "winningTrades": day.winning_trades,
        "losingTrades": day.losing_trades,
        "logic": day.logic,
        "rules": [{"text": rule.text, "checked": rule.checked} for rule in day.rules],
    }


def document_from_dict(raw: dict[str, Any], defaults: PlanParams = PlanParams()) -> PlanDocument:
    """
    Normalize a persisted plan document.

    Args:
        raw: Parsed JSON document
        defaults: Values used for missing configuration fields

    Returns:
        PlanDocument (financial fields as stored; recalculate to refresh)

    Raises:
        MalformedDocumentError: If the document structure is unusable
    """
    if not isinstance(raw, dict):
        raise MalformedDocumentError(
            f"Plan document must be an object, got {type(raw).__name__}",
            raw_data=str(raw)[:100],
        )

    months_raw = raw.get("months") or []
    if not isinstance(months_raw, list):
        raise MalformedDocumentError("months must be a list", raw_data=str(months_raw)[:100])

    config = PlanConfig(
        initial_capital=_number(raw.get("initialCapital"), defaults.initial_capital),
        final_target=_number(raw.get("finalTarget"), defaults.final_target),
        tenure=_whole_number(raw.get("tenure"), defaults.tenure_days, "tenure"),
    )

    months = []
    for index, month_raw in enumerate(months_raw):
        if not isinstance(month_raw, dict):
            raise MalformedDocumentError(f"months[{index}] must be an object")
        days_raw = month_raw.get("days") or []
        if not isinstance(days_raw, list):
            raise MalformedDocumentError(f"months[{index}].days must be a list")
        months.append(MonthGroup(
            id=_whole_number(month_raw.get("id"), index + 1, "month id"),
            month_name=str(month_raw.get("monthName") or ""),
            days=[day_from_dict(day_raw) for day_raw in days_raw],
        ))

    hidden = raw.get("hiddenSymbols") or []
    if not isinstance(hidden, list):
        raise MalformedDocumentError("hiddenSymbols must be a list", raw_data=str(hidden)[:100])

    return PlanDocument(
        config=config,
        months=months,
        hidden_symbols=[str(name) for name in hidden],
        version=_whole_number(raw.get("version"), defaults.document_version, "version"),
    )


def document_to_dict(document: PlanDocument) -> dict[str, Any]:
    """Serialize a plan document to the persisted shape."""
    return {
        "initialCapital": document.config.initial_capital,
        "finalTarget": document.config.final_target,
        "tenure": document.config.tenure,
        "months": [
            {
                "id": month.id,
                "monthName": month.month_name,
                "days": [day_to_dict(day) for day in month.days],
            }
            for month in document.months
        ],
        "hiddenSymbols": list(document.hidden_symbols),
        "version": document.version,
    }


def loads(raw_data: Union[bytes, str], defaults: Optional[PlanParams] = None) -> PlanDocument:
    """
    Parse a JSON plan document.

    Raises:
        MalformedDocumentError: If JSON parsing fails or the shape is unusable
    """
    try:
        parsed = orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        raise MalformedDocumentError(f"Invalid JSON: {e}", raw_data=str(raw_data)[:100])

    document = document_from_dict(parsed, defaults or PlanParams())
    logger.debug("Loaded plan document", days=document.day_count(), version=document.version)
    return document


def dumps(document: PlanDocument) -> bytes:
    """Serialize a plan document to indented JSON bytes."""
    return orjson.dumps(document_to_dict(document), option=orjson.OPT_INDENT_2)
