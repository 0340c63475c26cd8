"""Plan document persistence: locked JSON file store and debounced writer."""

import fcntl
import threading
from pathlib import Path
from typing import Callable, Optional, Union

import structlog

from ..config.defaults import PlanParams
from ..errors import PersistenceError
from ..plan import codec
from ..plan.models import PlanDocument

logger = structlog.get_logger(__name__)


class PlanDocumentStore:
    """Stores one plan document as an indented JSON file."""

    def __init__(self, path: Union[str, Path] = "challenge.json",
                 defaults: PlanParams = PlanParams()):
        self.path = Path(path)
        self.defaults = defaults
        self.logger = logger

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[PlanDocument]:
        """
        Read the stored document.

        Returns:
            The parsed PlanDocument, or None if nothing has been saved yet

        Raises:
            PersistenceError: If the file cannot be read
            MalformedDocumentError: If the file content is not a plan document
        """
        if not self.exists():
            return None

        try:
            with open(self.path, "rb") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                raw = f.read()
        except OSError as e:
            self.logger.error("Failed to read plan document", path=str(self.path), error=str(e))
            raise PersistenceError(
                f"Cannot read plan document: {e}", operation="load", target=str(self.path)
            ) from e

        document = codec.loads(raw, self.defaults)
        self.logger.info("Plan document loaded", path=str(self.path), days=document.day_count())
        return document

    def save(self, document: PlanDocument) -> None:
        """
        Write the document, replacing any previous content.

        Raises:
            PersistenceError: If the file cannot be written
        """
        self.write(codec.dumps(document))

    def write(self, payload: bytes) -> None:
        """Write an already serialized document."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "wb") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                f.write(payload)
        except OSError as e:
            self.logger.error("Failed to write plan document", path=str(self.path), error=str(e))
            raise PersistenceError(
                f"Cannot write plan document: {e}", operation="save", target=str(self.path)
            ) from e

        self.logger.debug("Plan document saved", path=str(self.path), size=len(payload))


class DebouncedDocumentWriter:
    """
    Coalesces rapid saves into one write after a quiet period.

    ``schedule`` serializes the document on the calling thread, so the timer
    thread only ever writes a finished snapshot and never reads a document
    that is being recalculated. Each ``schedule`` restarts the quiet period.
    A failed write keeps its snapshot pending until a later flush succeeds.
    """

    def __init__(
        self,
        store: PlanDocumentStore,
        quiet_seconds: float = 1.0,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.store = store
        self.quiet_seconds = quiet_seconds
        self.timer_factory = timer_factory
        self.logger = logger
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[bytes] = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, document: PlanDocument) -> None:
        """Snapshot ``document`` and queue its write after the quiet period."""
        payload = codec.dumps(document)

        with self._lock:
            self._pending = payload
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self.timer_factory(self.quiet_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        try:
            self.flush()
        except Exception as e:
            # Timer thread: nobody to propagate to; the snapshot stays pending
            self.logger.error(
                "Debounced plan document write failed",
                error=str(e),
                error_type=type(e).__name__,
            )

    def flush(self) -> bool:
        """
        Write the pending snapshot now.

        Returns:
            True if a write happened

        Raises:
            PersistenceError: If the store cannot write; the snapshot is kept
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

            if self._pending is None:
                return False

            self.store.write(self._pending)
            self._pending = None
            self.writes += 1
            return True
