"""
Asyncio session driving the engine.

Two producer tasks put periodic events on one queue: a feed tick every
``tick_seconds`` and a live-valuation refresh every ``valuation_seconds``.
A single consumer task applies those events and any user commands submitted
through the same queue, so ledger and plan mutations never interleave.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from ..engine import ChallengeEngine

logger = structlog.get_logger(__name__)


class EventType(str, Enum):
    TICK = "tick"
    VALUATION = "valuation"
    COMMAND = "command"


@dataclass
class SessionEvent:
    """Queued unit of work for the single writer."""
    type: EventType
    call: Optional[Callable[[], Any]] = None
    future: Optional[asyncio.Future] = field(default=None, repr=False)


class TradingSession:
    """Periodic scheduling plus single-writer command execution."""

    def __init__(
        self,
        engine: ChallengeEngine,
        tick_seconds: Optional[float] = None,
        valuation_seconds: Optional[float] = None,
    ):
        self.engine = engine
        self.tick_seconds = tick_seconds or engine.config.feed.tick_seconds
        self.valuation_seconds = valuation_seconds or engine.config.valuation.refresh_seconds
        self.logger = logger
        self.ticks = 0
        self.valuations = 0
        self._queue: Optional[asyncio.Queue] = None
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the producers and the consumer on the running loop."""
        if self.running:
            return

        self._queue = asyncio.Queue()
        self._tasks = [
            asyncio.create_task(self._produce(EventType.TICK, self.tick_seconds)),
            asyncio.create_task(self._produce(EventType.VALUATION, self.valuation_seconds)),
            asyncio.create_task(self._consume()),
        ]

        self.logger.info(
            "Trading session started",
            tick_seconds=self.tick_seconds,
            valuation_seconds=self.valuation_seconds,
        )

    async def stop(self) -> None:
        """Cancel the scheduler tasks, fail pending commands and release resources."""
        if not self.running:
            return

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        while self._queue is not None and not self._queue.empty():
            event = self._queue.get_nowait()
            if event.future is not None and not event.future.done():
                event.future.cancel()

        self.engine.shutdown()
        self.logger.info("Trading session stopped", ticks=self.ticks, valuations=self.valuations)

    async def __aenter__(self) -> "TradingSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _produce(self, event_type: EventType, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            await self._queue.put(SessionEvent(type=event_type))

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._apply(event)
            finally:
                self._queue.task_done()

    def _apply(self, event: SessionEvent) -> None:
        if event.type is EventType.COMMAND:
            if event.future.cancelled():
                return
            try:
                result = event.call()
            except Exception as e:
                event.future.set_exception(e)
            else:
                event.future.set_result(result)
            return

        try:
            if event.type is EventType.TICK:
                self.engine.tick()
                self.ticks += 1
            else:
                self.engine.revalue()
                self.valuations += 1
        except Exception:
            # Keep the scheduler alive; the next tick retries
            self.logger.exception("Scheduled event failed", event_type=event.type.value)

    async def submit(self, call: Callable[[], Any]) -> Any:
        """
        Run ``call`` on the single writer and return its result.

        Raises:
            RuntimeError: If the session is not running
            Exception: Whatever ``call`` raises
        """
        if not self.running:
            raise RuntimeError("Trading session is not running")

        future = asyncio.get_running_loop().create_future()
        await self._queue.put(SessionEvent(type=EventType.COMMAND, call=call, future=future))
        return await future

    async def open_position(self, *args: Any, **kwargs: Any):
        return await self.submit(lambda: self.engine.open_position(*args, **kwargs))

    async def close_position(self, *args: Any, **kwargs: Any):
        return await self.submit(lambda: self.engine.close_position(*args, **kwargs))

    async def set_journal_outcome(self, day_number: int, signed_amount: float):
        return await self.submit(
            lambda: self.engine.set_journal_outcome(day_number, signed_amount)
        )
