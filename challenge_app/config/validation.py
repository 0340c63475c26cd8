"""Configuration validation utilities."""

from dataclasses import dataclass, fields
from datetime import date
from typing import Any

from .defaults import (
    FeedParams,
    NotificationParams,
    PersistenceParams,
    PlanParams,
    TradingParams,
    ValuationParams,
)

_SECTIONS = {
    "plan": PlanParams,
    "trading": TradingParams,
    "feed": FeedParams,
    "valuation": ValuationParams,
    "persistence": PersistenceParams,
    "notifications": NotificationParams,
}


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_unknown_keys(section: str, params: dict[str, Any]) -> list[ValidationError]:
        """Reject keys that the typed configuration does not know about."""
        known = {f.name for f in fields(_SECTIONS[section])}
        return [
            ValidationError(field=f"{section}.{key}", message="Unknown parameter", value=value)
            for key, value in params.items()
            if key not in known
        ]

    @staticmethod
    def validate_plan_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate plan parameters."""
        errors = []

        for name in ("initial_capital", "final_target", "target_multiplier"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive number",
                        value=value
                    ))

        for name in ("tenure_days", "trading_days_per_month", "document_version"):
            if name in params:
                value = params[name]
                if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive integer",
                        value=value
                    ))

        if "fallback_daily_rate" in params:
            value = params["fallback_daily_rate"]
            if not _is_number(value) or value <= 0 or value > 1:
                errors.append(ValidationError(
                    field="fallback_daily_rate",
                    message="Must be a positive number between 0 and 1",
                    value=value
                ))

        if "min_daily_rate" in params:
            value = params["min_daily_rate"]
            if not _is_number(value) or value >= 0 or value <= -1:
                errors.append(ValidationError(
                    field="min_daily_rate",
                    message="Must be a number between -1 and 0",
                    value=value
                ))

        if "anchor_date" in params:
            value = params["anchor_date"]
            try:
                date.fromisoformat(str(value))
            except ValueError:
                errors.append(ValidationError(
                    field="anchor_date",
                    message="Must be an ISO date (YYYY-MM-DD)",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_trading_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate trading parameters."""
        errors = []

        for name in ("lot_size", "crypto_contract_size", "default_lots"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive number",
                        value=value
                    ))

        if "leverage_options" in params:
            value = params["leverage_options"]
            if (not isinstance(value, (list, tuple)) or not value or
                    not all(isinstance(v, int) and not isinstance(v, bool) and v >= 1 for v in value)):
                errors.append(ValidationError(
                    field="leverage_options",
                    message="Must be a non-empty list of integers >= 1",
                    value=value
                ))

        if "default_leverage" in params:
            value = params["default_leverage"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(ValidationError(
                    field="default_leverage",
                    message="Must be an integer >= 1",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_timing_params(params: dict[str, Any], section: str) -> list[ValidationError]:
        """Validate periods and other positive numeric settings."""
        errors = []

        for name in ("tick_seconds", "refresh_seconds", "debounce_seconds",
                     "display_seconds", "max_step_pips"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=f"{section}.{name}",
                        message="Must be a positive number",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        for section, params in config.items():
            if section not in _SECTIONS:
                errors.append(ValidationError(field=section, message="Unknown section", value=params))
                continue
            if not isinstance(params, dict):
                errors.append(ValidationError(field=section, message="Must be a mapping", value=params))
                continue
            errors.extend(ConfigValidator.validate_unknown_keys(section, params))

        if isinstance(config.get("plan"), dict):
            errors.extend(ConfigValidator.validate_plan_params(config["plan"]))

        if isinstance(config.get("trading"), dict):
            errors.extend(ConfigValidator.validate_trading_params(config["trading"]))

        for section in ("feed", "valuation", "persistence", "notifications"):
            if isinstance(config.get(section), dict):
                errors.extend(ConfigValidator.validate_timing_params(config[section], section))

        return errors
