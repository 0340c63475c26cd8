"""
Order execution against the position ledger.

Every ledger mutation (manual open, manual close, trigger close, live
valuation) runs under one re-entrant lock, so a margin check always sees a
consistent open-position set. Rejections leave the ledger untouched, are
announced through the notification stream and re-raised to the caller.
"""

import math
import threading
import uuid
from typing import Any, Callable, Optional, Union

import structlog

from ..config.defaults import TradingParams
from ..errors import (
    AnnotationError,
    InsufficientMarginError,
    InvalidOrderError,
    NoQuoteError,
    TradingRejectedError,
    UnknownPositionError,
)
from ..logging.config import get_ledger_logger, log_trade_event
from ..market.feed import PriceFeedSimulator
from ..market.models import CloseReason, ClosedTrade, Position, Quote, Side
from ..runtime.notifications import NotificationCenter
from ..utils.time import Clock, utc_now
from .annotations import ChartAnnotator, NullAnnotator
from .ledger import PositionLedger, margin_required, position_value
from .triggers import TriggerEvaluator

logger = structlog.get_logger(__name__)
ledger_logger = get_ledger_logger(__name__)

SettlementListener = Callable[[ClosedTrade], None]


def _format_lots(lots: float) -> str:
    return f"{lots:g}"


def _positive_price(field_name: str, value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidOrderError(f"{field_name} must be a number", field=field_name, value=value)
    if not math.isfinite(price) or price <= 0:
        raise InvalidOrderError(f"{field_name} must be positive", field=field_name, value=value)
    return price


class OrderExecutor:
    """Single-writer front end of the position ledger."""

    def __init__(
        self,
        ledger: PositionLedger,
        feed: PriceFeedSimulator,
        annotator: Optional[ChartAnnotator] = None,
        notifications: Optional[NotificationCenter] = None,
        on_settlement: Optional[SettlementListener] = None,
        params: TradingParams = TradingParams(),
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            ledger: Position ledger to mutate
            feed: Source of the latest quotes
            annotator: Chart collaborator; failures are ignored
            notifications: Receives fill, close and rejection messages
            on_settlement: Called with every ClosedTrade (plan integration)
            params: Accepted leverage options and contract sizes
            clock: Timestamp source for open/close times
        """
        self.logger = logger
        self.ledger = ledger
        self.feed = feed
        self.annotator = annotator or NullAnnotator()
        self.notifications = notifications or NotificationCenter()
        self.on_settlement = on_settlement
        self.params = params
        self.clock = clock or utc_now
        self.evaluator = TriggerEvaluator()
        self._lock = threading.RLock()

    # Chart annotations

    def _annotation_failed(self, position: Position, operation: str, exc: Exception) -> None:
        error = AnnotationError(
            f"Chart annotation {operation} failed: {exc}", position_id=position.id
        )
        self.logger.warning(
            "Ignoring chart annotation failure",
            position_id=error.position_id,
            operation=operation,
            error=str(error),
            degraded_functionality=error.degraded_functionality,
            fallback_strategy=error.fallback_strategy,
        )

    def _draw_annotation(self, position: Position) -> Any:
        try:
            return self.annotator.draw(position)
        except Exception as e:
            self._annotation_failed(position, "draw", e)
            return None

    def _update_annotation(self, position: Position) -> None:
        handle = position.annotation
        if handle is None or position.current_price is None:
            return
        try:
            self.annotator.update(handle, position.current_price, position.unrealized_pnl)
        except Exception as e:
            # Stale handle, stop updating it
            position.annotation = None
            self._annotation_failed(position, "update", e)

    def _remove_annotation(self, position: Position) -> None:
        handle = position.annotation
        if handle is None:
            return
        position.annotation = None
        try:
            self.annotator.remove(handle)
        except Exception as e:
            self._annotation_failed(position, "remove", e)

    def release_annotations(self) -> None:
        """Dispose every drawn annotation (session teardown)."""
        with self._lock:
            for position in self.ledger.open_positions:
                self._remove_annotation(position)

    # Rejections

    def _announce_rejection(self, error: TradingRejectedError, instrument: str) -> None:
        log_trade_event(
            ledger_logger,
            "order_rejected",
            "",
            instrument,
            {"reason": str(error), "error_type": type(error).__name__, **error.context},
        )
        self.notifications.notify(str(error), is_profit=False)

    def _validate_order(self, side: Union[Side, str], instrument: str, lots: float,
                        leverage: int) -> Side:
        try:
            side = Side(side)
        except ValueError:
            raise InvalidOrderError(f"Unknown side: {side!r}", field="side", value=side)

        if instrument not in self.feed.catalog:
            raise InvalidOrderError(
                f"Unknown instrument: {instrument}", field="instrument", value=instrument
            )

        if isinstance(lots, bool) or not isinstance(lots, (int, float)) \
                or not math.isfinite(lots) or lots <= 0:
            raise InvalidOrderError("Lot size must be positive", field="lots", value=lots)

        if leverage not in self.params.leverage_options:
            raise InvalidOrderError(
                f"Leverage must be one of {list(self.params.leverage_options)}",
                field="leverage", value=leverage,
            )

        return side

    # Orders

    def open_position(
        self,
        side: Union[Side, str],
        instrument: str,
        lots: float,
        leverage: int,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> Position:
        """
        Open a market position at the current ask (long) or bid (short).

        Args:
            side: Side.LONG / Side.SHORT (or their string values)
            instrument: Instrument name, e.g. "EUR/USD"
            lots: Position size in lots
            leverage: One of the configured leverage options
            stop_loss: Optional stop-loss price
            take_profit: Optional take-profit price

        Returns:
            The new open Position

        Raises:
            InvalidOrderError: Parameters outside the accepted domain
            NoQuoteError: No quote exists yet for the instrument
            InsufficientMarginError: Margin required exceeds free margin
        """
        with self._lock:
            try:
                side = self._validate_order(side, instrument, lots, leverage)
                stop_loss = _positive_price("stop_loss", stop_loss)
                take_profit = _positive_price("take_profit", take_profit)

                quote = self.feed.quote(instrument)
                if quote is None:
                    raise NoQuoteError("Market prices not available.", instrument=instrument)

                price = quote.entry_price(side)
                value = position_value(price, lots, self.ledger.units_per_lot(instrument))
                required = margin_required(value, leverage)
                free = self.ledger.free_margin()

                if required > free:
                    raise InsufficientMarginError(
                        "Not enough free margin",
                        margin_required=required,
                        free_margin=free,
                        context={"margin_required": required, "free_margin": free},
                    )
            except TradingRejectedError as e:
                self._announce_rejection(e, instrument)
                raise

            position = Position(
                id=uuid.uuid4().hex,
                instrument=instrument,
                side=side,
                lots=lots,
                leverage=leverage,
                entry_price=price,
                opened_at=self.clock(),
                stop_loss=stop_loss,
                take_profit=take_profit,
                current_price=quote.close_price(side),
            )
            position.annotation = self._draw_annotation(position)

            self.ledger.add(position)

        self.notifications.notify(
            f"{side.label} {_format_lots(lots)} lot {instrument} @ {price:.5f}",
            is_profit=True,
        )
        return position

    def close_position(
        self,
        position_id: str,
        price: Optional[float] = None,
        reason: CloseReason = CloseReason.MANUAL,
    ) -> ClosedTrade:
        """
        Close an open position and report the realized amount.

        Args:
            position_id: Id of an open position
            price: Explicit exit price; defaults to the current bid (long)
                or ask (short)
            reason: Close reason recorded in history

        Returns:
            The ClosedTrade prepended to history

        Raises:
            UnknownPositionError: No open position has that id
            NoQuoteError: No explicit price and no quote for the instrument
        """
        with self._lock:
            position = self.ledger.get(position_id)
            instrument = position.instrument if position is not None else ""

            try:
                if position is None:
                    raise UnknownPositionError(
                        f"No open position with id {position_id}", position_id=position_id
                    )

                if price is None:
                    quote = self.feed.quote(position.instrument)
                    if quote is None:
                        raise NoQuoteError(
                            "Market prices unavailable, cannot close.",
                            instrument=position.instrument,
                        )
                    price = quote.close_price(position.side)
            except TradingRejectedError as e:
                self._announce_rejection(e, instrument)
                raise

            self._remove_annotation(position)
            trade = self.ledger.settle(position_id, price, reason, self.clock())

            self.notifications.notify(
                f"Closed {trade.instrument} for PnL: {trade.realized_pnl:.2f} ({reason.label})",
                is_profit=trade.realized_pnl >= 0,
            )

            if self.on_settlement is not None:
                self.on_settlement(trade)

        return trade

    def on_quote(self, quote: Quote) -> list[ClosedTrade]:
        """
        Force-close every position whose stop-loss or take-profit the quote hits.

        Returns:
            Trades closed by this quote
        """
        with self._lock:
            decisions = self.evaluator.evaluate(quote, self.ledger.open_positions)
            closed = []
            for decision in decisions:
                closed.append(
                    self.close_position(decision.position_id, decision.close_price, decision.reason)
                )

        if closed:
            self.logger.info(
                "Triggers fired",
                instrument=quote.instrument,
                sequence=quote.sequence,
                closed=len(closed),
            )
        return closed

    def revalue(self) -> int:
        """
        Mark open positions to the latest quotes and move their annotations.

        Returns:
            Number of positions revalued
        """
        with self._lock:
            revalued = self.ledger.revalue(self.feed.snapshot())

            for position in self.ledger.open_positions:
                self._update_annotation(position)

        return revalued
