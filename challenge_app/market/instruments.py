"""
Static instrument catalog.

Six tradable symbols: four forex/metal pairs quoted per standard lot and two
crypto pairs quoted per coin. Base prices and spreads can be overridden from
``instruments.yaml``.
"""

from dataclasses import dataclass, replace
from typing import Any, Iterator, Optional

import structlog

from ..config.defaults import TradingParams

logger = structlog.get_logger(__name__)

CRYPTO_ASSETS = ("BTC", "ETH")


@dataclass(frozen=True)
class Instrument:
    """Tradable symbol with its quoting conventions."""
    name: str                                        # e.g. "EUR/USD"
    chart_symbol: str                                # Display symbol, e.g. "FX:EURUSD"
    base_price: float                                # Initial mid price
    pip_size: float
    spread_pips: float

    @property
    def is_crypto(self) -> bool:
        return any(asset in self.name for asset in CRYPTO_ASSETS)

    @property
    def spread(self) -> float:
        """Ask minus bid in price units."""
        return self.spread_pips * self.pip_size


DEFAULT_INSTRUMENTS = (
    Instrument("EUR/USD", "FX:EURUSD", 1.0850, 0.0001, 1.2),
    Instrument("GBP/USD", "FX:GBPUSD", 1.2680, 0.0001, 1.5),
    Instrument("USD/JPY", "FX:USDJPY", 157.20, 0.01, 1.4),
    Instrument("XAU/USD", "OANDA:XAUUSD", 2350.00, 0.01, 25.0),
    Instrument("BTC/USD", "COINBASE:BTCUSD", 65000.00, 0.01, 50.0),
    Instrument("ETH/USD", "COINBASE:ETHUSD", 3500.00, 0.01, 2.5),
)

OVERRIDABLE_FIELDS = ("chart_symbol", "base_price", "pip_size", "spread_pips")


def contract_size(instrument: Instrument, params: TradingParams = TradingParams()) -> float:
    """Units per lot: one coin for crypto pairs, the standard lot otherwise."""
    return params.crypto_contract_size if instrument.is_crypto else params.lot_size


class InstrumentCatalog:
    """Ordered, name-indexed collection of instruments."""

    def __init__(self, instruments: tuple[Instrument, ...] = DEFAULT_INSTRUMENTS):
        self._instruments = {instrument.name: instrument for instrument in instruments}

    def __iter__(self) -> Iterator[Instrument]:
        return iter(self._instruments.values())

    def __len__(self) -> int:
        return len(self._instruments)

    def __contains__(self, name: object) -> bool:
        return name in self._instruments

    def get(self, name: str) -> Optional[Instrument]:
        return self._instruments.get(name)

    def names(self) -> list[str]:
        return list(self._instruments)

    def visible(self, hidden_symbols: list[str]) -> list[Instrument]:
        """Instruments not hidden by the user, in catalog order."""
        return [instrument for instrument in self if instrument.name not in hidden_symbols]

    def with_overrides(self, overrides: dict[str, Any]) -> "InstrumentCatalog":
        """
        Return a catalog with per-instrument field overrides applied.

        Args:
            overrides: ``{name: {field: value}}``; unknown names and fields
                are skipped with a warning

        Returns:
            New InstrumentCatalog (this one is unchanged)
        """
        updated = dict(self._instruments)

        for name, fields in (overrides or {}).items():
            if name not in updated or not isinstance(fields, dict):
                logger.warning("Ignoring override for unknown instrument", instrument=name)
                continue

            changes = {}
            for field_name, value in fields.items():
                if field_name not in OVERRIDABLE_FIELDS:
                    logger.warning(
                        "Ignoring unknown instrument field",
                        instrument=name, field=field_name,
                    )
                    continue
                changes[field_name] = value if field_name == "chart_symbol" else float(value)

            updated[name] = replace(updated[name], **changes)
            logger.debug("Applied instrument override", instrument=name, fields=sorted(changes))

        return InstrumentCatalog(tuple(updated.values()))


def default_catalog() -> InstrumentCatalog:
    """The built-in six-instrument catalog."""
    return InstrumentCatalog()
