"""
Human-readable notification stream.

Order fills, closes and rejections produce short messages such as
``"BUY 0.01 lot EUR/USD @ 1.08560"``. A message is shown for a fixed display
window; older ones are kept in a bounded history.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from ..utils.time import Clock, utc_now

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    text: str
    is_profit: bool                                  # Positive (green) or negative (red) styling
    created_at: datetime


NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Collects notifications and forwards them to listeners."""

    def __init__(self, display_seconds: float = 2.5, history_size: int = 50,
                 clock: Optional[Clock] = None):
        self.display_seconds = display_seconds
        self.clock = clock or utc_now
        self.history: deque[Notification] = deque(maxlen=history_size)
        self._listeners: list[NotificationListener] = []

    def notify(self, text: str, is_profit: bool) -> Notification:
        notification = Notification(text=text, is_profit=is_profit, created_at=self.clock())
        self.history.append(notification)

        logger.info("Notification", text=text, is_profit=is_profit)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(
                    "Notification listener failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return notification

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def latest(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def current(self) -> Optional[Notification]:
        """The latest notification while it is still inside its display window."""
        latest = self.latest()
        if latest is None:
            return None
        if self.clock() - latest.created_at > timedelta(seconds=self.display_seconds):
            return None
        return latest

    def clear(self) -> None:
        self.history.clear()
