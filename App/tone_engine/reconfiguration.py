"""Serialized, debounced application of quantization parameter changes.

AIDEV-NOTE: The controller is a three-state machine:

    IDLE --request--> REBUILDING --done--> IDLE
    REBUILDING --request--> REBUILDING_WITH_PENDING(value)
    REBUILDING_WITH_PENDING --done--> REBUILDING (pending value starts at once)

Requests made while IDLE but within the debounce window of the last applied
change are held as a single deferred value; each new request replaces it and
only the latest is applied when the window closes. All methods run on the
thread that owns the controller; worker results come back as queued signals.
"""

import logging
import math
import time
from enum import Enum
from typing import Any, Callable

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal, pyqtSlot

from models import DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


class ReconfigState(Enum):
    """Controller states."""

    IDLE = "idle"
    REBUILDING = "rebuilding"
    REBUILDING_WITH_PENDING = "rebuilding_with_pending"


def _apply(apply_change: Callable[[Any], Any], value: Any, on_error) -> Any:
    try:
        return apply_change(value)
    except Exception as e:
        logger.exception(f"Rebuild failed for {value!r}")
        on_error(str(e))
        return None


class RebuildThread(QThread):
    """Background thread running one rebuild."""

    completed = pyqtSignal(object, object)  # value, result (None on failure)
    error = pyqtSignal(str)  # Error message

    def __init__(self, apply_change: Callable[[Any], Any], value: Any):
        super().__init__()
        self.apply_change = apply_change
        self.value = value

    def run(self):
        """Execute the rebuild in background."""
        result = _apply(self.apply_change, self.value, self.error.emit)
        self.completed.emit(self.value, result)


class ReconfigurationController(QObject):
    """Coalesces configuration requests into one rebuild at a time."""

    state_changed = pyqtSignal(object)  # ReconfigState
    rebuild_started = pyqtSignal(object)  # value
    rebuild_finished = pyqtSignal(object, object)  # value, result
    error = pyqtSignal(str)

    def __init__(
        self,
        apply_change: Callable[[Any], Any],
        debounce_seconds: float = DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        threaded: bool = True,
        parent: QObject | None = None,
    ):
        """Initialize the controller.

        Args:
            apply_change: Called with a requested value to perform the rebuild
            debounce_seconds: Window after an applied change in which requests
                are coalesced
            clock: Monotonic time source in seconds
            threaded: Run rebuilds on a QThread; False runs them inline in
                the caller
        """
        super().__init__(parent)
        self.apply_change = apply_change
        self.debounce_seconds = debounce_seconds
        self.clock = clock
        self.threaded = threaded

        self._state = ReconfigState.IDLE
        self._pending: Any = None  # only set in REBUILDING_WITH_PENDING
        self._deferred: Any = None  # latest request inside the debounce window
        self._last_applied: float | None = None
        self._worker: RebuildThread | None = None
        self._shut_down = False

        self._debounce_timer = QTimer(self)
        self._debounce_timer.setSingleShot(True)
        self._debounce_timer.timeout.connect(self.flush_deferred)

    # -------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------

    @property
    def state(self) -> ReconfigState:
        return self._state

    @property
    def pending_value(self) -> Any:
        return self._pending

    @property
    def deferred_value(self) -> Any:
        return self._deferred

    @property
    def is_busy(self) -> bool:
        return self._state is not ReconfigState.IDLE

    # -------------------------------------------------------------
    # API methods
    # -------------------------------------------------------------

    def request(self, value: Any):
        """Ask for a rebuild with value (never None)."""
        if self._shut_down:
            logger.debug(f"Controller shut down, ignoring {value!r}")
            return

        if self._state is not ReconfigState.IDLE:
            logger.debug(f"Rebuild in progress, storing pending value {value!r}")
            self._pending = value
            self._set_state(ReconfigState.REBUILDING_WITH_PENDING)
            return

        if self._last_applied is not None:
            elapsed = self.clock() - self._last_applied
            if elapsed < self.debounce_seconds:
                logger.debug(f"Debouncing update to {value!r}")
                self._deferred = value
                if not self._debounce_timer.isActive():
                    remaining = self.debounce_seconds - elapsed
                    self._debounce_timer.start(max(0, math.ceil(remaining * 1000)))
                return

        self._begin(value)

    @pyqtSlot()
    def flush_deferred(self):
        """Apply the value held back by the debounce window, if any."""
        value = self._deferred
        self._deferred = None
        self._debounce_timer.stop()
        if value is None or self._shut_down:
            return

        if self._state is ReconfigState.IDLE:
            self._begin(value)
        else:
            self._pending = value
            self._set_state(ReconfigState.REBUILDING_WITH_PENDING)

    def shutdown(self):
        """Drop deferred and pending requests and wait for a running rebuild.

        No further rebuilds start once this returns.
        """
        self._shut_down = True
        self._debounce_timer.stop()
        self._deferred = None
        self._pending = None
        if self._worker is not None:
            self._worker.wait()

    # -------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------

    def _set_state(self, state: ReconfigState):
        if state is self._state:
            return
        self._state = state
        self.state_changed.emit(state)

    def _mark_started(self, value: Any):
        # A newer request may already have arrived and left us WITH_PENDING
        if self._state is ReconfigState.IDLE:
            self._set_state(ReconfigState.REBUILDING)
        self._last_applied = self.clock()
        logger.debug(f"Starting rebuild with {value!r}")
        self.rebuild_started.emit(value)

    def _begin(self, value: Any):
        self._debounce_timer.stop()
        self._deferred = None
        self._mark_started(value)

        if self.threaded:
            self._spawn(value)
            return

        while value is not None:
            result = _apply(self.apply_change, value, self.error.emit)
            value = self._complete(value, result)
            if value is not None:
                self._mark_started(value)

    def _spawn(self, value: Any):
        worker = RebuildThread(self.apply_change, value)
        worker.completed.connect(self._on_worker_completed)
        worker.error.connect(self.error)
        self._worker = worker
        worker.start()

    @pyqtSlot(object, object)
    def _on_worker_completed(self, value: Any, result: Any):
        if self._worker is not None:
            # run() is returning; reap it before dropping the reference
            self._worker.wait()
            self._worker = None

        next_value = self._complete(value, result)
        if next_value is not None and not self._shut_down:
            self._mark_started(next_value)
            self._spawn(next_value)

    def _complete(self, value: Any, result: Any) -> Any:
        """Finish a rebuild; returns the pending value to run next, if any."""
        next_value = self._pending
        self._pending = None
        if next_value is None:
            self._set_state(ReconfigState.IDLE)
        else:
            logger.debug(f"Processing pending update {next_value!r}")
            self._set_state(ReconfigState.REBUILDING)

        self.rebuild_finished.emit(value, result)
        return next_value
