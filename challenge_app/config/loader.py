"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    DefaultConfig,
    FeedParams,
    NotificationParams,
    PersistenceParams,
    PlanParams,
    TradingParams,
    ValuationParams,
    get_default_config,
)


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def _load_yaml(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename

        if not path.exists():
            return {}

        with open(path) as f:
            loaded = yaml.safe_load(f)

        return loaded if isinstance(loaded, dict) else {}

    def load_settings(self) -> dict[str, Any]:
        """Load deployment-level overrides from settings.yaml."""
        return self._load_yaml("settings.yaml")

    def load_instrument_overrides(self) -> dict[str, dict[str, Any]]:
        """Load per-instrument catalog overrides from instruments.yaml."""
        return self._load_yaml("instruments.yaml").get("instruments", {}) or {}

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. settings.yaml in the config directory
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_settings())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def build_config(self, overrides: Optional[dict[str, Any]] = None) -> DefaultConfig:
        """Merge all tiers and rebuild the typed configuration."""
        merged = self.merge_config(overrides)
        trading = dict(merged.get("trading", {}))
        if "leverage_options" in trading:
            trading["leverage_options"] = tuple(trading["leverage_options"])

        return DefaultConfig(
            plan=PlanParams(**merged.get("plan", {})),
            trading=TradingParams(**trading),
            feed=FeedParams(**merged.get("feed", {})),
            valuation=ValuationParams(**merged.get("valuation", {})),
            persistence=PersistenceParams(**merged.get("persistence", {})),
            notifications=NotificationParams(**merged.get("notifications", {})),
        )

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
