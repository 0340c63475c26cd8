"""
Synthetic bid/ask price feed.

Each active instrument carries a mid price that takes an independent bounded
random step per tick; the instrument's fixed spread is re-applied
symmetrically around the new mid. Instruments are activated lazily, so
quotes for symbols nobody asked for are never computed. State is
memory-only and resets with the process.
"""

import random
from datetime import datetime
from typing import Callable, Optional

import structlog

from ..utils.time import Clock, utc_now
from .instruments import Instrument, InstrumentCatalog
from .models import Quote

logger = structlog.get_logger(__name__)

QuoteSubscriber = Callable[[Quote], None]


class PriceFeedSimulator:
    """Random-walk quote generator with subscriber fan-out."""

    def __init__(
        self,
        catalog: InstrumentCatalog,
        rng: Optional[random.Random] = None,
        max_step_pips: float = 10.0,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            catalog: Instruments that may be activated
            rng: Random source; inject a seeded ``random.Random`` for
                reproducible paths
            max_step_pips: Width of the per-tick step window in pips
            clock: Timestamp source for quotes
        """
        self.logger = logger
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.max_step_pips = max_step_pips
        self.clock = clock or utc_now
        self._mids: dict[str, float] = {}
        self._quotes: dict[str, Quote] = {}
        self._sequence = 0
        self._subscribers: list[QuoteSubscriber] = []

    def _make_quote(self, instrument: Instrument, mid: float, ts: datetime) -> Quote:
        half_spread = instrument.spread / 2
        return Quote(
            instrument=instrument.name,
            bid=mid - half_spread,
            ask=mid + half_spread,
            sequence=self._sequence,
            ts=ts,
        )

    def activate(self, name: str) -> Quote:
        """
        Start tracking an instrument, seeding it at its base price.

        Activating an already active instrument returns its latest quote.

        Raises:
            KeyError: If the instrument is not in the catalog
        """
        if name in self._quotes:
            return self._quotes[name]

        instrument = self.catalog.get(name)
        if instrument is None:
            raise KeyError(f"Unknown instrument: {name}")

        self._mids[name] = instrument.base_price
        quote = self._make_quote(instrument, instrument.base_price, self.clock())
        self._quotes[name] = quote

        self.logger.debug("Activated instrument", instrument=name, bid=quote.bid, ask=quote.ask)
        return quote

    def deactivate(self, name: str) -> None:
        """Stop tracking an instrument and drop its quote."""
        self._mids.pop(name, None)
        if self._quotes.pop(name, None) is not None:
            self.logger.debug("Deactivated instrument", instrument=name)

    def is_active(self, name: str) -> bool:
        return name in self._quotes

    def active_instruments(self) -> list[str]:
        return list(self._quotes)

    def quote(self, name: str) -> Optional[Quote]:
        """Latest quote for an instrument, None if it has never been activated."""
        return self._quotes.get(name)

    def snapshot(self) -> dict[str, Quote]:
        return dict(self._quotes)

    def step(self, publish: bool = True) -> list[Quote]:
        """
        Advance every active instrument by one tick.

        Args:
            publish: Fan the new quotes out to subscribers

        Returns:
            The new quotes, one per active instrument
        """
        self._sequence += 1
        ts = self.clock()
        quotes = []

        for name in list(self._mids):
            instrument = self.catalog.get(name)
            move = (self.rng.random() - 0.5) * self.max_step_pips * instrument.pip_size
            mid = self._mids[name] + move
            self._mids[name] = mid

            quote = self._make_quote(instrument, mid, ts)
            self._quotes[name] = quote
            quotes.append(quote)

        if publish:
            for quote in quotes:
                self.publish(quote)

        return quotes

    def subscribe(self, callback: QuoteSubscriber) -> Callable[[], None]:
        """
        Register a quote callback.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, quote: Quote) -> None:
        """Deliver a quote to every subscriber; a failing subscriber does not stop the others."""
        for callback in list(self._subscribers):
            try:
                callback(quote)
            except Exception as e:
                self.logger.error(
                    "Quote subscriber failed",
                    instrument=quote.instrument,
                    sequence=quote.sequence,
                    error=str(e),
                    error_type=type(e).__name__,
                )
