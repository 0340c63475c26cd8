"""Unit tests for the challenge engine coordinator."""

import random
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from conftest import FakeClock

from challenge_app.engine import ChallengeEngine
from challenge_app.errors import InsufficientMarginError, NoQuoteError
from challenge_app.market.models import CloseReason, Side
from challenge_app.persistence.document_store import PlanDocumentStore
from challenge_app.plan.recalculator import round_half_up


class TestEngineInitialization:
    """Test suite for engine setup."""

    def test_new_engine_has_default_plan(self, engine):
        assert engine.document.day_count() == 66
        assert engine.document.config.initial_capital == 50000.0
        first = engine.document.months[0].days[0]
        assert first.target == round_half_up(50000 * 20 ** (1 / 66))

    def test_visible_instruments_are_quoted(self, engine):
        assert sorted(engine.feed.active_instruments()) == sorted(engine.catalog.names())

    def test_invalid_overrides_fall_back(self, empty_config_dir, clock):
        engine = ChallengeEngine(
            config_dir=empty_config_dir,
            overrides={"plan": {"tenure_days": -3}},
            clock=clock,
        )
        assert engine.config.plan.tenure_days == 66

    def test_valid_overrides_applied(self, empty_config_dir, clock):
        engine = ChallengeEngine(
            config_dir=empty_config_dir,
            overrides={"plan": {"tenure_days": 22}},
            clock=clock,
        )
        assert engine.document.day_count() == 22

    def test_invalid_settings_file_uses_defaults(self, empty_config_dir, clock):
        (empty_config_dir / "settings.yaml").write_text("plan:\n  initial_capital: -5\n")
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock)
        assert engine.config.plan.initial_capital == 50000.0

    def test_instrument_overrides_applied(self, empty_config_dir, clock):
        (empty_config_dir / "instruments.yaml").write_text(
            "instruments:\n  EUR/USD:\n    base_price: 1.5\n"
        )
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock)
        assert engine.feed.quote("EUR/USD").mid == pytest.approx(1.5)


class TestPlanOperations:
    """Plan editing through the engine."""

    def test_set_journal_outcome(self, engine):
        engine.set_journal_outcome(1, 1000)
        assert engine.document.months[0].days[1].capital == 51000

    def test_update_targets_preserves_journal(self, engine):
        engine.set_journal_outcome(1, 1000)
        engine.journal.set_field(1, "logic", "kept")

        engine.update_targets(100000, 200000, 30)

        days = list(engine.document.iter_days())
        assert len(days) == 30
        assert days[0].logic == "kept"
        assert days[0].capital == 100000
        assert days[1].capital == 101000

    def test_update_targets_sanitizes_tenure(self, engine):
        engine.update_targets(50000, 100000, 0)
        assert engine.document.day_count() == 66

    def test_reset_challenge(self, engine):
        engine.set_journal_outcome(1, 1000)
        engine.toggle_symbol_visibility("XAU/USD")
        document = engine.document

        engine.reset_challenge()

        assert engine.document is document
        assert not any(day.is_recorded for day in document.iter_days())
        assert document.hidden_symbols == []
        assert engine.feed.is_active("XAU/USD")

    def test_reset_drops_notifications_keeps_positions(self, engine):
        position = engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        assert engine.notifications.current() is not None

        engine.reset_challenge()

        assert engine.notifications.latest() is None
        assert engine.notifications.current() is None
        assert engine.ledger.open_positions == [position]

    def test_build_calendar_and_recalculate(self, engine):
        months = engine.build_calendar(5)
        assert sum(len(m.days) for m in months) == 5
        assert engine.recalculate() is engine.document.months

    def test_month_analysis(self, engine):
        engine.set_journal_outcome(2, -500)
        assert engine.month_analysis(0).pnl == -500

    def test_new_document_uses_arguments(self, engine):
        document = engine.new_document(10000, 20000, 10)
        assert document.day_count() == 10
        assert document.months[-1].days[-1].target == pytest.approx(20000, abs=1)


class TestSymbolVisibility:
    """Hiding and showing instruments."""

    def test_hidden_symbol_stops_quoting(self, engine):
        assert engine.toggle_symbol_visibility("ETH/USD") is True
        assert not engine.feed.is_active("ETH/USD")
        assert "ETH/USD" not in [i.name for i in engine.visible_instruments()]

        assert engine.toggle_symbol_visibility("ETH/USD") is False
        assert engine.feed.is_active("ETH/USD")

    def test_hidden_symbol_with_open_position_keeps_quoting(self, engine):
        engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        engine.toggle_symbol_visibility("EUR/USD")
        assert engine.feed.is_active("EUR/USD")

    def test_hidden_symbol_stops_quoting_after_last_close(self, engine):
        first = engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        second = engine.open_position(Side.SHORT, "EUR/USD", 0.01, 100)
        engine.toggle_symbol_visibility("EUR/USD")

        engine.close_position(first.id)
        assert engine.feed.is_active("EUR/USD")

        engine.close_position(second.id)
        assert not engine.feed.is_active("EUR/USD")
        assert "EUR/USD" not in [quote.instrument for quote in engine.tick().quotes]

    def test_visible_symbol_keeps_quoting_after_close(self, engine):
        position = engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        engine.close_position(position.id)
        assert engine.feed.is_active("EUR/USD")

    def test_unknown_symbol_ignored(self, engine):
        assert engine.toggle_symbol_visibility("DOGE/USD") is False
        assert engine.document.hidden_symbols == []


class TestTrading:
    """Trading integration with the plan."""

    def test_available_capital_is_todays_start_capital(self, engine):
        today = engine.document.months[0].days[1]
        assert engine.available_capital() == today.capital

    def test_available_capital_outside_plan(self, empty_config_dir):
        clock = FakeClock(datetime(2031, 3, 3, tzinfo=timezone.utc))
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock)
        assert engine.available_capital() == 50000.0

    def test_close_folds_pnl_into_today(self, engine):
        position = engine.open_position(Side.LONG, "EUR/USD", 1, 100)
        trade = engine.close_position(position.id, price=position.entry_price + 0.0010)

        today = engine.document.months[0].days[1]
        assert trade.realized_pnl == pytest.approx(100.0)
        assert today.actual == "100.00"
        assert today.pnl_sign == "+"
        assert engine.document.months[0].days[2].capital == today.capital + 100

    def test_close_outside_plan_notifies(self, empty_config_dir):
        clock = FakeClock(datetime(2031, 3, 3, tzinfo=timezone.utc))
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock, rng=random.Random(1))
        position = engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)

        engine.close_position(position.id)

        assert "not recorded" in engine.notifications.latest().text
        assert not any(day.is_recorded for day in engine.document.iter_days())

    def test_insufficient_margin_rejected(self, engine):
        with pytest.raises(InsufficientMarginError):
            engine.open_position(Side.LONG, "XAU/USD", 100, 1)
        assert engine.ledger.open_positions == []

    def test_hidden_instrument_has_no_quote(self, engine):
        engine.toggle_symbol_visibility("GBP/USD")
        with pytest.raises(NoQuoteError):
            engine.open_position(Side.LONG, "GBP/USD", 0.01, 100)

    def test_tick_fires_triggers_before_subscribers(self, engine):
        position = engine.open_position(Side.LONG, "EUR/USD", 0.01, 100, stop_loss=10.0)
        seen = {}
        engine.on_tick(
            lambda quote: seen.setdefault(quote.instrument, len(engine.ledger.open_positions))
        )

        result = engine.tick()

        assert [t.id for t in result.closed] == [position.id]
        assert result.closed[0].reason is CloseReason.STOP_LOSS
        assert len(result.quotes) == 6
        assert seen["EUR/USD"] == 0

    def test_on_tick_unsubscribe(self, engine):
        callback = Mock()
        unsubscribe = engine.on_tick(callback)
        engine.tick()
        unsubscribe()
        engine.tick()
        assert callback.call_count == 6

    def test_revalue(self, engine):
        engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        engine.tick()
        assert engine.revalue() == 1


class TestViews:
    """Read-only views."""

    def test_positions_and_history_views(self, engine):
        position = engine.open_position(Side.SHORT, "BTC/USD", 0.1, 50)
        positions = engine.positions_view()

        assert positions[0]["id"] == position.id
        assert positions[0]["side"] == "SELL"

        engine.close_position(position.id)
        history = engine.history_view()

        assert engine.positions_view() == []
        assert history[0]["reason"] == "Manual Close"
        assert history[0]["instrument"] == "BTC/USD"

    def test_account_summary(self, engine):
        engine.open_position(Side.LONG, "EUR/USD", 0.01, 100)
        summary = engine.account_summary()

        assert summary["open_positions"] == 1
        assert summary["margin_used"] == pytest.approx(engine.ledger.margin_used())
        assert summary["free_margin"] == pytest.approx(
            summary["available_capital"] + summary["floating_pnl"] - summary["margin_used"]
        )


class TestPersistence:
    """Document store integration."""

    def test_edits_are_saved_on_flush(self, empty_config_dir, clock, tmp_path):
        store = PlanDocumentStore(tmp_path / "plan.json")
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock, store=store)

        engine.set_journal_outcome(1, 250)
        engine.set_journal_outcome(1, 300)
        assert engine.flush() is True
        assert engine.writer.writes == 1

        reloaded = ChallengeEngine(config_dir=empty_config_dir, clock=clock, store=store)
        assert reloaded.document.months[0].days[0].actual == "300"

    @pytest.mark.parametrize("payload", [
        b"{broken",
        b'{"months": [{"days": [5]}]}',
        b'{"tenure": "nan"}',
    ])
    def test_corrupt_document_starts_fresh(self, empty_config_dir, clock, tmp_path, payload):
        path = tmp_path / "plan.json"
        path.write_bytes(payload)

        engine = ChallengeEngine(
            config_dir=empty_config_dir, clock=clock, store=PlanDocumentStore(path)
        )
        assert engine.document.day_count() == 66

    def test_flush_without_store(self, engine):
        assert engine.flush() is False

    def test_shutdown_flushes(self, empty_config_dir, clock, tmp_path):
        store = PlanDocumentStore(tmp_path / "plan.json")
        engine = ChallengeEngine(config_dir=empty_config_dir, clock=clock, store=store)
        engine.set_journal_outcome(1, 10)

        engine.shutdown()
        assert store.exists()
