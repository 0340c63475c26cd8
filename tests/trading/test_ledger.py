"""Tests for the position ledger and margin arithmetic."""

import pytest
from conftest import FIXED_NOW, make_position, make_quote

from challenge_app.errors import UnknownPositionError
from challenge_app.market.models import CloseReason, Side
from challenge_app.trading.ledger import (
    PositionLedger,
    margin_required,
    position_value,
    side_pnl,
)


@pytest.fixture
def ledger(catalog):
    return PositionLedger(lambda: 50000.0, catalog)


class TestArithmetic:
    """Pure helpers."""

    def test_position_value_and_margin(self):
        value = position_value(1.0856, 0.01, 100000)
        assert value == pytest.approx(1085.60)
        assert margin_required(value, 100) == pytest.approx(10.856)

    def test_side_pnl(self):
        assert side_pnl(Side.LONG, 1.0856, 1.0866, 0.01, 100000) == pytest.approx(1.0)
        assert side_pnl(Side.SHORT, 1.0856, 1.0866, 0.01, 100000) == pytest.approx(-1.0)
        assert side_pnl(Side.SHORT, 65000, 64500, 0.2, 1) == pytest.approx(100.0)


class TestMargin:
    """Margin and free margin."""

    def test_empty_ledger(self, ledger):
        assert ledger.margin_used() == 0
        assert ledger.floating_pnl() == 0
        assert ledger.free_margin() == 50000
        assert ledger.equity() == 50000

    def test_free_margin_formula(self, ledger):
        forex = make_position(position_id="fx")
        forex.unrealized_pnl = -2.5
        crypto = make_position(
            instrument="BTC/USD", entry_price=65000, lots=0.1, leverage=50, position_id="btc"
        )
        crypto.unrealized_pnl = 12.0
        ledger.add(forex)
        ledger.add(crypto)

        assert ledger.margin_used() == pytest.approx(10.856 + 130.0)
        assert ledger.floating_pnl() == pytest.approx(9.5)
        assert ledger.free_margin() == pytest.approx(50000 + 9.5 - 140.856)
        assert ledger.equity() == pytest.approx(50009.5)

    def test_capital_provider_is_read_live(self, catalog):
        capital = {"value": 1000.0}
        ledger = PositionLedger(lambda: capital["value"], catalog)
        capital["value"] = 2000.0
        assert ledger.free_margin() == 2000.0


class TestSettlement:
    """Moving positions into history."""

    def test_settle_moves_to_history_newest_first(self, ledger):
        ledger.add(make_position(position_id="first"))
        ledger.add(make_position(position_id="second"))

        ledger.settle("first", 1.0866, CloseReason.MANUAL, FIXED_NOW)
        trade = ledger.settle("second", 1.0846, CloseReason.STOP_LOSS, FIXED_NOW)

        assert ledger.open_positions == []
        assert [t.id for t in ledger.history] == ["second", "first"]
        assert trade.realized_pnl == pytest.approx(-1.0)
        assert trade.reason is CloseReason.STOP_LOSS
        assert trade.exit_price == 1.0846

    def test_crypto_short_example(self, ledger):
        ledger.add(make_position(
            instrument="BTC/USD", side=Side.SHORT, entry_price=65000, lots=0.3,
            leverage=1, position_id="btc",
        ))
        trade = ledger.settle("btc", 64500, CloseReason.MANUAL, FIXED_NOW)
        assert trade.realized_pnl == pytest.approx(500 * 0.3)

    def test_settle_unknown(self, ledger):
        with pytest.raises(UnknownPositionError):
            ledger.settle("missing", 1.0, CloseReason.MANUAL, FIXED_NOW)


class TestRevalue:
    """Live valuation."""

    def test_marks_to_close_price(self, ledger):
        long = make_position(position_id="long")
        short = make_position(side=Side.SHORT, entry_price=1.0856, position_id="short")
        ledger.add(long)
        ledger.add(short)

        count = ledger.revalue({"EUR/USD": make_quote("EUR/USD", 1.0860, 1.0862)})

        assert count == 2
        assert long.current_price == 1.0860
        assert long.unrealized_pnl == pytest.approx(0.4)
        assert short.current_price == 1.0862
        assert short.unrealized_pnl == pytest.approx(-0.6)

    def test_positions_without_quote_untouched(self, ledger):
        position = make_position(instrument="GBP/USD")
        position.unrealized_pnl = 3.0
        ledger.add(position)

        assert ledger.revalue({}) == 0
        assert position.unrealized_pnl == 3.0
