"""
Position ledger and margin accounting.

The ledger is the single source of truth for open positions and trade
history. It performs no locking itself; the order executor serializes every
mutation.
"""

from datetime import datetime
from typing import Callable, Mapping, Optional

import structlog

from ..config.defaults import TradingParams
from ..errors import UnknownPositionError
from ..logging.config import get_ledger_logger, log_trade_event
from ..market.instruments import InstrumentCatalog, contract_size
from ..market.models import CloseReason, ClosedTrade, Position, Quote, Side

logger = structlog.get_logger(__name__)
ledger_logger = get_ledger_logger(__name__)

CapitalProvider = Callable[[], float]


def position_value(price: float, lots: float, units_per_lot: float) -> float:
    """Notional exposure of a position."""
    return price * lots * units_per_lot


def margin_required(value: float, leverage: int) -> float:
    """Margin that backs a position of the given notional value."""
    return value / leverage


def side_pnl(side: Side, entry_price: float, exit_price: float, lots: float,
             units_per_lot: float) -> float:
    """Side-aware profit or loss: ``(exit - entry) * lots * size * sign``."""
    return (exit_price - entry_price) * lots * units_per_lot * side.sign


class PositionLedger:
    """Open positions, newest-first trade history and margin figures."""

    def __init__(
        self,
        capital_provider: CapitalProvider,
        catalog: InstrumentCatalog,
        params: TradingParams = TradingParams(),
    ):
        """
        Args:
            capital_provider: Returns the capital currently available for
                trading (today's start capital in the plan)
            catalog: Instrument catalog used for contract sizes
            params: Lot size and crypto contract size
        """
        self.logger = logger
        self.capital_provider = capital_provider
        self.catalog = catalog
        self.params = params
        self.open_positions: list[Position] = []
        self.history: list[ClosedTrade] = []

    def units_per_lot(self, instrument_name: str) -> float:
        instrument = self.catalog.get(instrument_name)
        if instrument is None:
            return self.params.lot_size
        return contract_size(instrument, self.params)

    def get(self, position_id: str) -> Optional[Position]:
        for position in self.open_positions:
            if position.id == position_id:
                return position
        return None

    def position_margin(self, position: Position) -> float:
        value = position_value(
            position.entry_price, position.lots, self.units_per_lot(position.instrument)
        )
        return margin_required(value, position.leverage)

    def margin_used(self) -> float:
        return sum(self.position_margin(position) for position in self.open_positions)

    def floating_pnl(self) -> float:
        return sum(position.unrealized_pnl for position in self.open_positions)

    def available_capital(self) -> float:
        return self.capital_provider()

    def free_margin(self) -> float:
        """Capital available to back new positions."""
        return self.available_capital() + self.floating_pnl() - self.margin_used()

    def equity(self) -> float:
        return self.available_capital() + self.floating_pnl()

    def add(self, position: Position) -> None:
        self.open_positions.append(position)

        log_trade_event(
            ledger_logger,
            "position_opened",
            position.id,
            position.instrument,
            {
                "side": position.side.value,
                "lots": position.lots,
                "leverage": position.leverage,
                "entry_price": position.entry_price,
            },
        )

    def settle(self, position_id: str, exit_price: float, reason: CloseReason,
               closed_at: datetime) -> ClosedTrade:
        """
        Close a position and move it to history.

        Args:
            position_id: Id of an open position
            exit_price: Price the position is closed at
            reason: Close reason recorded in history
            closed_at: Settlement timestamp

        Returns:
            The ClosedTrade prepended to history

        Raises:
            UnknownPositionError: If no open position has that id
        """
        position = self.get(position_id)
        if position is None:
            raise UnknownPositionError(
                f"No open position with id {position_id}", position_id=position_id
            )

        realized = side_pnl(
            position.side,
            position.entry_price,
            exit_price,
            position.lots,
            self.units_per_lot(position.instrument),
        )
        trade = ClosedTrade.from_position(position, exit_price, closed_at, realized, reason)

        self.open_positions.remove(position)
        self.history.insert(0, trade)

        log_trade_event(
            ledger_logger,
            "position_closed",
            position.id,
            position.instrument,
            {"exit_price": exit_price, "realized_pnl": realized, "reason": reason.value},
        )
        return trade

    def revalue(self, quotes: Mapping[str, Quote]) -> int:
        """
        Mark open positions to the latest quotes.

        Positions whose instrument has no quote keep their previous values.

        Returns:
            Number of positions revalued
        """
        revalued = 0
        for position in self.open_positions:
            quote = quotes.get(position.instrument)
            if quote is None:
                continue

            price = quote.close_price(position.side)
            position.current_price = price
            position.unrealized_pnl = side_pnl(
                position.side,
                position.entry_price,
                price,
                position.lots,
                self.units_per_lot(position.instrument),
            )
            revalued += 1

        return revalued
