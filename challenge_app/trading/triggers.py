"""
Stop-loss / take-profit trigger evaluation.

Rules, evaluated per position in this order (stop-loss wins ties):

    long  stop-loss    bid <= stop_loss     close at bid
    short stop-loss    ask >= stop_loss     close at ask
    long  take-profit  bid >= take_profit   close at bid
    short take-profit  ask <= take_profit   close at ask
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from ..market.models import CloseReason, Position, Quote, Side


@dataclass(frozen=True)
class TriggerDecision:
    """A position that must be force-closed at a given price."""
    position_id: str
    close_price: float
    reason: CloseReason


class TriggerEvaluator:
    """Pure evaluator; closing the positions is left to the executor."""

    @staticmethod
    def check(quote: Quote, position: Position) -> Optional[TriggerDecision]:
        """Decision for a single position, None when nothing fires."""
        if position.instrument != quote.instrument:
            return None

        is_long = position.side is Side.LONG
        price = quote.close_price(position.side)

        if position.stop_loss is not None:
            hit = price <= position.stop_loss if is_long else price >= position.stop_loss
            if hit:
                return TriggerDecision(position.id, price, CloseReason.STOP_LOSS)

        if position.take_profit is not None:
            hit = price >= position.take_profit if is_long else price <= position.take_profit
            if hit:
                return TriggerDecision(position.id, price, CloseReason.TAKE_PROFIT)

        return None

    def evaluate(self, quote: Quote, positions: Iterable[Position]) -> list[TriggerDecision]:
        """
        Decisions for every open position on the quote's instrument.

        The positions are snapshotted first, so closing one decision's
        position does not change the evaluation of the others.
        """
        decisions = []
        for position in tuple(positions):
            decision = self.check(quote, position)
            if decision is not None:
                decisions.append(decision)
        return decisions
