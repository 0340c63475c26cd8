"""Pytest configuration and shared fixtures."""

import random
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from challenge_app.engine import ChallengeEngine
from challenge_app.market.feed import PriceFeedSimulator
from challenge_app.market.instruments import default_catalog
from challenge_app.market.models import Position, Quote, Side
from challenge_app.plan.calendar import build_calendar
from challenge_app.plan.models import PlanConfig, PlanDocument
from challenge_app.plan.recalculator import recalculate


# Tuesday of the first plan week: trading day 2
FIXED_NOW = datetime(2025, 11, 18, 10, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingAnnotator:
    """Chart annotator that records calls and can be told to fail."""

    def __init__(self, fail_on: Optional[set[str]] = None):
        self.fail_on = fail_on or set()
        self.drawn: list[str] = []
        self.updated: list[tuple[Any, float, float]] = []
        self.removed: list[Any] = []

    def draw(self, position: Position) -> Any:
        if "draw" in self.fail_on:
            raise RuntimeError("chart not ready")
        self.drawn.append(position.id)
        return f"line-{position.id}"

    def update(self, handle: Any, price: float, unrealized_pnl: float) -> None:
        if "update" in self.fail_on:
            raise RuntimeError("line disposed")
        self.updated.append((handle, price, unrealized_pnl))

    def remove(self, handle: Any) -> None:
        if "remove" in self.fail_on:
            raise RuntimeError("line disposed")
        self.removed.append(handle)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def plan_document() -> PlanDocument:
    """Default 50k -> 1M over 66 days plan, fully calculated."""
    document = PlanDocument(
        config=PlanConfig(initial_capital=50000.0, final_target=1000000.0, tenure=66),
        months=build_calendar(66),
    )
    recalculate(document)
    return document


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def feed(catalog, clock) -> PriceFeedSimulator:
    return PriceFeedSimulator(catalog, random.Random(7), clock=clock)


@pytest.fixture
def empty_config_dir(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def engine(empty_config_dir, clock) -> ChallengeEngine:
    return ChallengeEngine(config_dir=empty_config_dir, clock=clock, rng=random.Random(42))


@pytest.fixture
def annotator() -> RecordingAnnotator:
    return RecordingAnnotator()


def make_quote(instrument: str, bid: float, ask: float, sequence: int = 1) -> Quote:
    return Quote(instrument=instrument, bid=bid, ask=ask, sequence=sequence, ts=FIXED_NOW)


def make_position(
    instrument: str = "EUR/USD",
    side: Side = Side.LONG,
    entry_price: float = 1.0856,
    lots: float = 0.01,
    leverage: int = 100,
    stop_loss: Optional[float] = None,
    take_profit: Optional[float] = None,
    position_id: str = "pos-1",
) -> Position:
    return Position(
        id=position_id,
        instrument=instrument,
        side=side,
        lots=lots,
        leverage=leverage,
        entry_price=entry_price,
        opened_at=FIXED_NOW,
        stop_loss=stop_loss,
        take_profit=take_profit,
    )


TODAY = date(2025, 11, 18)
