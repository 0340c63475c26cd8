"""
Challenge engine coordinator.

Owns the plan document and the demo trading stack and wires them together:

    price feed -> trigger evaluation -> position ledger -> journal -> plan

Realized trade results are folded into today's trading day, which moves the
actual-capital path; today's start capital in turn is the capital available
to the ledger for margin.
"""

import random
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .errors import MalformedDocumentError, PersistenceError
from .market.feed import PriceFeedSimulator, QuoteSubscriber
from .market.instruments import Instrument, default_catalog
from .market.models import CloseReason, ClosedTrade, Position, Quote, Side
from .persistence.document_store import DebouncedDocumentWriter, PlanDocumentStore
from .plan import calendar, recalculator
from .plan.journal import JournalEditor, MonthAnalysis
from .plan.models import MonthGroup, PlanConfig, PlanDocument, TradingDay
from .runtime.notifications import NotificationCenter
from .trading.annotations import ChartAnnotator
from .trading.executor import OrderExecutor
from .trading.ledger import PositionLedger
from .utils.time import Clock, format_timestamp, trading_today, utc_now

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TickResult:
    """Outcome of one feed tick."""
    quotes: list[Quote]
    closed: list[ClosedTrade]


class ChallengeEngine:
    """
    Main coordinator for the capital-growth challenge.

    All ledger mutations go through the order executor's lock; plan
    mutations go through the journal editor. Callers that drive the engine
    from timers should use ``runtime.session.TradingSession``, which keeps
    a single writer.
    """

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
        document: Optional[PlanDocument] = None,
        store: Optional[PlanDocumentStore] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        annotator: Optional[ChartAnnotator] = None,
    ) -> None:
        """
        Args:
            config_dir: Directory holding settings.yaml / instruments.yaml
            overrides: Highest-priority configuration overrides
            document: Plan document to own; loaded from ``store`` or created
                fresh when omitted
            store: Document store; when given, edits are saved debounced
            clock: Wall-clock source (drives "today" and timestamps)
            rng: Random source for the price feed
            annotator: Chart annotation collaborator
        """
        self.logger = logger
        self.clock = clock or utc_now

        self.config_loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        self.config = self._load_config(overrides)

        self.catalog = default_catalog().with_overrides(
            self.config_loader.load_instrument_overrides()
        )

        if rng is None:
            seed = self.config.feed.seed
            rng = random.Random(seed) if seed else random.Random()

        self.feed = PriceFeedSimulator(
            self.catalog, rng, self.config.feed.max_step_pips, self.clock
        )
        self.notifications = NotificationCenter(
            self.config.notifications.display_seconds,
            self.config.notifications.history_size,
            self.clock,
        )

        self.store = store
        self.writer = (
            DebouncedDocumentWriter(store, self.config.persistence.debounce_seconds)
            if store is not None else None
        )

        self.document = document if document is not None else self._initial_document()
        recalculator.recalculate(self.document, self.config.plan)

        self.journal = JournalEditor(
            self.document, self.today, self.config.plan, on_change=self._document_changed
        )
        self.ledger = PositionLedger(self.available_capital, self.catalog, self.config.trading)
        self.executor = OrderExecutor(
            self.ledger,
            self.feed,
            annotator=annotator,
            notifications=self.notifications,
            on_settlement=self._settle_trade,
            params=self.config.trading,
            clock=self.clock,
        )

        for instrument in self.visible_instruments():
            self.feed.activate(instrument.name)

        self.logger.info(
            "Challenge engine initialized",
            days=self.document.day_count(),
            active_instruments=self.feed.active_instruments(),
            persistent=self.store is not None,
        )

    # Setup

    def _load_config(self, overrides: Optional[dict[str, Any]]) -> DefaultConfig:
        """Validated configuration; invalid tiers fall back to defaults."""
        if overrides:
            errors = ConfigValidator.validate_config(overrides)
            if errors:
                self.logger.error(
                    "Configuration override validation failed, ignoring overrides",
                    errors=[f"{err.field}: {err.message} (got: {err.value})" for err in errors],
                )
                overrides = None

        errors = ConfigValidator.validate_config(self.config_loader.load_settings())
        if errors:
            self.logger.error(
                "settings.yaml validation failed, using defaults",
                config_dir=str(self.config_loader.config_dir),
                errors=[f"{err.field}: {err.message} (got: {err.value})" for err in errors],
            )
            return get_default_config()

        return self.config_loader.build_config(overrides)

    def _initial_document(self) -> PlanDocument:
        if self.store is None or not self.store.exists():
            return self.new_document()

        try:
            document = self.store.load()
        except (MalformedDocumentError, PersistenceError) as e:
            self.logger.warning(
                "Stored plan document unusable, starting a new challenge",
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.new_document()

        return document if document is not None else self.new_document()

    def new_document(
        self,
        initial_capital: Optional[float] = None,
        final_target: Optional[float] = None,
        tenure: Optional[int] = None,
    ) -> PlanDocument:
        """Fresh, fully calculated plan document (defaults for omitted values)."""
        plan = self.config.plan
        config = PlanConfig(
            initial_capital=plan.initial_capital if initial_capital is None else initial_capital,
            final_target=plan.final_target if final_target is None else final_target,
            tenure=plan.tenure_days if tenure is None else tenure,
        )
        sanitized = recalculator.sanitize_config(config, plan)

        document = PlanDocument(
            config=config,
            months=self.build_calendar(sanitized.tenure),
            version=plan.document_version,
        )
        recalculator.recalculate(document, plan)
        return document

    # Plan operations

    def today(self) -> date:
        return trading_today(self.clock)

    def build_calendar(self, tenure: int,
                       previous_months: Optional[list[MonthGroup]] = None) -> list[MonthGroup]:
        return calendar.build_calendar(
            tenure,
            previous_months,
            anchor=self.config.plan.anchor_date,
            days_per_month=self.config.plan.trading_days_per_month,
        )

    def recalculate(self, document: Optional[PlanDocument] = None) -> list[MonthGroup]:
        target = document if document is not None else self.document
        return recalculator.recalculate(target, self.config.plan)

    def set_journal_outcome(self, day_number: int, signed_amount: float) -> TradingDay:
        return self.journal.set_journal_outcome(day_number, signed_amount)

    def update_targets(self, initial_capital: float, final_target: float, tenure: int) -> PlanDocument:
        """
        Change the challenge parameters, keeping every journal entry whose
        date is still part of the plan.
        """
        config = PlanConfig(initial_capital, final_target, tenure)
        sanitized = recalculator.sanitize_config(config, self.config.plan)

        self.document.config = config
        self.document.months = self.build_calendar(sanitized.tenure, self.document.months)
        self.recalculate()

        self.logger.info(
            "Challenge targets updated",
            initial_capital=sanitized.initial_capital,
            final_target=sanitized.final_target,
            tenure=sanitized.tenure,
        )
        self._document_changed(self.document)
        return self.document

    def reset_challenge(self) -> PlanDocument:
        """
        Replace the plan with a fresh default one.

        Open positions are kept; notifications from the old challenge are
        dropped.
        """
        fresh = self.new_document()

        self.document.config = fresh.config
        self.document.months = fresh.months
        self.document.hidden_symbols = fresh.hidden_symbols
        self.document.version = fresh.version

        for instrument in self.visible_instruments():
            self.feed.activate(instrument.name)
        self.notifications.clear()

        self.logger.info("Challenge reset", days=self.document.day_count())
        self._document_changed(self.document)
        return self.document

    def month_analysis(self, month_index: int) -> MonthAnalysis:
        return self.journal.month_analysis(month_index)

    # Instruments

    def visible_instruments(self) -> list[Instrument]:
        return self.catalog.visible(self.document.hidden_symbols)

    def toggle_symbol_visibility(self, name: str) -> bool:
        """
        Hide or show an instrument.

        Hidden instruments stop being quoted unless a position is still open
        on them. Returns True if the instrument is hidden afterwards.
        """
        if name not in self.catalog:
            self.logger.warning("Ignoring visibility toggle for unknown instrument", instrument=name)
            return False

        hidden = self.journal.toggle_symbol(name)

        if hidden:
            if not self._has_open_position(name):
                self.feed.deactivate(name)
        else:
            self.feed.activate(name)

        return hidden

    # Trading operations

    def available_capital(self) -> float:
        """Today's start capital, or the initial capital outside the plan."""
        located = self.journal.find_today()
        if located is None:
            return self.document.config.initial_capital
        return located[2].capital

    def open_position(
        self,
        side: Union[Side, str],
        instrument: str,
        lots: float,
        leverage: int,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
    ) -> Position:
        return self.executor.open_position(side, instrument, lots, leverage, stop_loss, take_profit)

    def close_position(self, position_id: str, price: Optional[float] = None,
                       reason: CloseReason = CloseReason.MANUAL) -> ClosedTrade:
        return self.executor.close_position(position_id, price, reason)

    def on_tick(self, subscriber: QuoteSubscriber):
        """Subscribe to every quote; returns the unsubscribe function."""
        return self.feed.subscribe(subscriber)

    def tick(self) -> TickResult:
        """Advance the feed one step, fire triggers, then notify subscribers."""
        quotes = self.feed.step(publish=False)
        closed = []

        for quote in quotes:
            closed.extend(self.executor.on_quote(quote))
            self.feed.publish(quote)

        return TickResult(quotes=quotes, closed=closed)

    def revalue(self) -> int:
        return self.executor.revalue()

    def _has_open_position(self, name: str) -> bool:
        return any(position.instrument == name for position in self.ledger.open_positions)

    def _settle_trade(self, trade: ClosedTrade) -> None:
        # A hidden instrument was only kept quoted for its open positions
        if trade.instrument in self.document.hidden_symbols and not self._has_open_position(
            trade.instrument
        ):
            self.feed.deactivate(trade.instrument)

        day = self.journal.apply_trade_result(trade.realized_pnl)
        if day is None:
            self.notifications.notify(
                "No active trading day found for today; trade result not recorded.",
                is_profit=False,
            )

    # Views

    def positions_view(self) -> list[dict[str, Any]]:
        return [
            {
                "id": position.id,
                "instrument": position.instrument,
                "side": position.side.label,
                "lots": position.lots,
                "leverage": position.leverage,
                "entry_price": position.entry_price,
                "current_price": position.current_price,
                "stop_loss": position.stop_loss,
                "take_profit": position.take_profit,
                "unrealized_pnl": position.unrealized_pnl,
                "opened_at": format_timestamp(position.opened_at),
            }
            for position in self.ledger.open_positions
        ]

    def history_view(self) -> list[dict[str, Any]]:
        return [
            {
                "id": trade.id,
                "instrument": trade.instrument,
                "side": trade.side.label,
                "lots": trade.lots,
                "entry_price": trade.entry_price,
                "exit_price": trade.exit_price,
                "realized_pnl": trade.realized_pnl,
                "reason": trade.reason.label,
                "opened_at": format_timestamp(trade.opened_at),
                "closed_at": format_timestamp(trade.closed_at),
            }
            for trade in self.ledger.history
        ]

    def account_summary(self) -> dict[str, Any]:
        return {
            "available_capital": self.ledger.available_capital(),
            "floating_pnl": self.ledger.floating_pnl(),
            "margin_used": self.ledger.margin_used(),
            "free_margin": self.ledger.free_margin(),
            "equity": self.ledger.equity(),
            "open_positions": len(self.ledger.open_positions),
        }

    # Persistence

    def _document_changed(self, document: PlanDocument) -> None:
        if self.writer is not None:
            self.writer.schedule(document)

    def flush(self) -> bool:
        """Write any pending document change now."""
        if self.writer is None:
            return False
        return self.writer.flush()

    def shutdown(self) -> None:
        """Release chart annotations and persist pending edits."""
        self.executor.release_annotations()
        self.flush()
        self.logger.info("Challenge engine shut down")
