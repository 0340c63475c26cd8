"""
Chart annotation collaborator.

Positions may carry an opaque handle drawn by a charting front end. The
position lifecycle never depends on it: failures are reported as
``AnnotationError`` and ignored by the executor.
"""

from typing import Any, Optional, Protocol

from ..market.models import Position


class ChartAnnotator(Protocol):
    """Draws, updates and removes order lines for positions."""

    def draw(self, position: Position) -> Optional[Any]:
        """Create an annotation and return its handle (None if unsupported)."""
        ...

    def update(self, handle: Any, price: float, unrealized_pnl: float) -> None:
        ...

    def remove(self, handle: Any) -> None:
        ...


class NullAnnotator:
    """Annotator used when no chart is attached."""

    def draw(self, position: Position) -> Optional[Any]:
        return None

    def update(self, handle: Any, price: float, unrealized_pnl: float) -> None:
        pass

    def remove(self, handle: Any) -> None:
        pass
