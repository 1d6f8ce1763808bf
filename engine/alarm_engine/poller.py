"""
Clock poller driving periodic alarm evaluation
"""

import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .logging_utils import get_logger, log_error

logger = get_logger(__name__)


class PollerState(Enum):
    """Clock poller lifecycle state"""
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


class ClockPoller:
    """Calls ``on_tick(now)`` every ``interval_s`` seconds on one worker thread.

    A poller runs once: after ``stop()`` it stays stopped. Ticks never overlap
    because a single thread runs them back to back.
    """

    def __init__(self, interval_s: float, on_tick: Callable[[datetime], None],
                 clock: Callable[[], datetime] = datetime.now,
                 join_timeout_s: float = 2.0):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.interval_s = interval_s
        self.on_tick = on_tick
        self.clock = clock
        self.join_timeout_s = join_timeout_s

        self._state = PollerState.STOPPED
        self._finished = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.tick_count = 0

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is PollerState.RUNNING

    def start(self) -> None:
        with self._lock:
            if self._state is PollerState.RUNNING:
                return
            if self._finished:
                raise RuntimeError("ClockPoller cannot be restarted after stop()")
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._loop, name="alarm-clock-poller", daemon=True)
            self._state = PollerState.RUNNING
            self._thread.start()
        logger.info(f"Clock poller started (interval {self.interval_s}s)")

    def stop(self) -> None:
        with self._lock:
            was_running = self._state is PollerState.RUNNING
            self._finished = True
            self._state = PollerState.STOPPED
            self._stop_event.set()
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.join_timeout_s)
            if thread.is_alive():
                logger.warning("Clock poller thread did not exit within the join timeout")
        if was_running:
            logger.info(f"Clock poller stopped after {self.tick_count} tick(s)")

    def tick(self, now: Optional[datetime] = None) -> None:
        """Run one evaluation synchronously; errors are logged, not raised"""
        now = now or self.clock()
        self.tick_count += 1
        try:
            self.on_tick(now)
        except Exception as e:
            log_error(logger, None, e, {"phase": "tick", "now": now.isoformat()})

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_s):
            self.tick()

    def __enter__(self) -> "ClockPoller":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
