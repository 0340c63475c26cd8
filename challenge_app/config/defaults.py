"""Default configuration parameters for the challenge engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PlanParams:
    """Compounding plan parameters and the fallback table for bad configs."""
    initial_capital: float = 50000.0                 # Fallback when capital <= 0
    final_target: float = 1000000.0                  # New-document target
    tenure_days: int = 66                            # Fallback when tenure <= 0
    target_multiplier: float = 2.0                   # Target fallback = capital * multiplier
    fallback_daily_rate: float = 0.01                # Used for NaN/inf/degenerate rates
    min_daily_rate: float = -0.5                     # Rates below this are degenerate
    trading_days_per_month: int = 22
    anchor_date: str = "2025-11-17"                  # First trading day of every plan
    document_version: int = 2


@dataclass(frozen=True)
class TradingParams:
    """Demo trading parameters."""
    lot_size: float = 100000.0                       # Currency pair contract size
    crypto_contract_size: float = 1.0
    leverage_options: tuple[int, ...] = (1, 50, 100, 200, 400)
    default_lots: float = 0.01
    default_leverage: int = 1


@dataclass(frozen=True)
class FeedParams:
    """Synthetic price feed parameters."""
    tick_seconds: float = 2.0
    max_step_pips: float = 10.0                      # Random walk step bound
    seed: int = 0                                    # 0 means unseeded


@dataclass(frozen=True)
class ValuationParams:
    """Live valuation refresh parameters."""
    refresh_seconds: float = 1.0


@dataclass(frozen=True)
class PersistenceParams:
    """Plan document persistence parameters."""
    document_path: str = "challenge.json"
    debounce_seconds: float = 1.0                    # Quiet period before a write


@dataclass(frozen=True)
class NotificationParams:
    """Notification stream parameters."""
    display_seconds: float = 2.5
    history_size: int = 50


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    plan: PlanParams
    trading: TradingParams
    feed: FeedParams
    valuation: ValuationParams
    persistence: PersistenceParams
    notifications: NotificationParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        plan=PlanParams(),
        trading=TradingParams(),
        feed=FeedParams(),
        valuation=ValuationParams(),
        persistence=PersistenceParams(),
        notifications=NotificationParams(),
    )
