"""
Market and position data models.

Quotes and closed trades are immutable snapshots. Open positions are mutable
because live valuation rewrites their floating P&L on every refresh.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Side(str, Enum):
    """Position direction."""
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        return 1 if self is Side.LONG else -1

    @property
    def label(self) -> str:
        return "BUY" if self is Side.LONG else "SELL"


class CloseReason(str, Enum):
    """Why a position was closed."""
    MANUAL = "manual"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"

    @property
    def label(self) -> str:
        return CLOSE_REASON_LABELS[self]


CLOSE_REASON_LABELS = {
    CloseReason.MANUAL: "Manual Close",
    CloseReason.STOP_LOSS: "Stop Loss Hit",
    CloseReason.TAKE_PROFIT: "Take Profit Hit",
}


@dataclass(frozen=True)
class Quote:
    """Bid/ask snapshot for one instrument at one feed tick."""
    instrument: str
    bid: float
    ask: float
    sequence: int
    ts: datetime

    @property
    def mid(self) -> float:
        return (self.bid + self.ask) / 2

    def close_price(self, side: Side) -> float:
        """Price at which a position on ``side`` could be closed now."""
        return self.bid if side is Side.LONG else self.ask

    def entry_price(self, side: Side) -> float:
        """Price at which a position on ``side`` would be opened now."""
        return self.ask if side is Side.LONG else self.bid


@dataclass
class Position:
    """Open leveraged position held in the ledger."""
    id: str
    instrument: str
    side: Side
    lots: float
    leverage: int
    entry_price: float
    opened_at: datetime
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    unrealized_pnl: float = 0.0
    current_price: Optional[float] = None
    annotation: Any = field(default=None, compare=False, repr=False)   # Opaque chart handle


@dataclass(frozen=True)
class ClosedTrade:
    """Settled position as it appears in trade history."""
    id: str
    instrument: str
    side: Side
    lots: float
    leverage: int
    entry_price: float
    opened_at: datetime
    stop_loss: Optional[float]
    take_profit: Optional[float]
    exit_price: float
    closed_at: datetime
    realized_pnl: float
    reason: CloseReason

    @classmethod
    def from_position(
        cls,
        position: Position,
        exit_price: float,
        closed_at: datetime,
        realized_pnl: float,
        reason: CloseReason,
    ) -> "ClosedTrade":
        return cls(
            id=position.id,
            instrument=position.instrument,
            side=position.side,
            lots=position.lots,
            leverage=position.leverage,
            entry_price=position.entry_price,
            opened_at=position.opened_at,
            stop_loss=position.stop_loss,
            take_profit=position.take_profit,
            exit_price=exit_price,
            closed_at=closed_at,
            realized_pnl=realized_pnl,
            reason=reason,
        )
