"""Integration tests for the asyncio trading session."""

import asyncio
from unittest.mock import Mock

import pytest

from challenge_app.errors import InsufficientMarginError
from challenge_app.market.models import Side
from challenge_app.runtime.session import EventType, SessionEvent, TradingSession


class TestSessionLifecycle:
    """Start, stop and periodic scheduling."""

    def test_periodic_events_run(self, engine):
        async def scenario():
            session = TradingSession(engine, tick_seconds=0.01, valuation_seconds=0.01)
            async with session:
                assert session.running
                await asyncio.sleep(0.1)
            return session

        session = asyncio.run(scenario())

        assert not session.running
        assert session.ticks > 0
        assert session.valuations > 0

    def test_periods_default_from_config(self, engine):
        session = TradingSession(engine)
        assert session.tick_seconds == engine.config.feed.tick_seconds
        assert session.valuation_seconds == engine.config.valuation.refresh_seconds

    def test_submit_requires_running_session(self, engine):
        session = TradingSession(engine)
        with pytest.raises(RuntimeError):
            asyncio.run(session.submit(lambda: None))

    def test_stop_is_idempotent(self, engine):
        async def scenario():
            session = TradingSession(engine, tick_seconds=1, valuation_seconds=1)
            await session.start()
            await session.start()
            await session.stop()
            await session.stop()
            return session

        assert not asyncio.run(scenario()).running


class TestSessionCommands:
    """User commands through the single writer."""

    def test_open_and_close_round_trip(self, engine):
        async def scenario():
            async with TradingSession(engine, tick_seconds=5, valuation_seconds=5) as session:
                position = await session.open_position(Side.LONG, "EUR/USD", 0.01, 100)
                assert len(engine.ledger.open_positions) == 1
                return await session.close_position(position.id)

        trade = asyncio.run(scenario())

        assert engine.ledger.open_positions == []
        assert engine.ledger.history == [trade]
        assert engine.document.months[0].days[1].is_recorded

    def test_command_errors_propagate_to_caller(self, engine):
        async def scenario():
            async with TradingSession(engine, tick_seconds=5, valuation_seconds=5) as session:
                await session.open_position(Side.LONG, "XAU/USD", 100, 1)

        with pytest.raises(InsufficientMarginError):
            asyncio.run(scenario())

    def test_journal_command(self, engine):
        async def scenario():
            async with TradingSession(engine, tick_seconds=5, valuation_seconds=5) as session:
                return await session.set_journal_outcome(1, 500)

        day = asyncio.run(scenario())
        assert day.actual == "500"

    def test_failing_tick_keeps_session_alive(self, engine):
        session = TradingSession(engine)
        engine.tick = Mock(side_effect=RuntimeError("feed down"))

        session._apply(SessionEvent(type=EventType.TICK))
        session._apply(SessionEvent(type=EventType.VALUATION))

        assert session.ticks == 0
        assert session.valuations == 1
