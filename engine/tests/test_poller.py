"""
Tests for the clock poller lifecycle
"""

import logging
import threading
from unittest.mock import Mock

import pytest

from alarm_engine.poller import ClockPoller, PollerState

from fakes import WEDNESDAY_0730


class TestClockPoller:
    """Start/stop state machine and tick handling"""

    def test_initial_state_is_stopped(self):
        """Test initial state is stopped"""
        poller = ClockPoller(10, Mock())
        assert poller.state is PollerState.STOPPED
        assert not poller.is_running

    def test_start_and_stop(self):
        """Test start and stop"""
        poller = ClockPoller(10, Mock())
        poller.start()
        assert poller.state is PollerState.RUNNING
        poller.stop()
        assert poller.state is PollerState.STOPPED

    def test_stop_is_idempotent_and_terminal(self):
        """Test stop is idempotent and terminal"""
        poller = ClockPoller(10, Mock())
        poller.start()
        poller.stop()
        poller.stop()
        with pytest.raises(RuntimeError):
            poller.start()

    def test_running_loop_ticks_with_clock_time(self):
        """Test running loop ticks with clock time"""
        ticked = threading.Event()
        seen = []

        def on_tick(now):
            seen.append(now)
            ticked.set()

        with ClockPoller(0.01, on_tick, clock=lambda: WEDNESDAY_0730) as poller:
            assert ticked.wait(2.0)
            assert poller.is_running
        assert seen[0] == WEDNESDAY_0730
        assert poller.state is PollerState.STOPPED

    def test_no_ticks_after_stop(self):
        """Test no ticks after stop"""
        on_tick = Mock()
        poller = ClockPoller(0.01, on_tick)
        poller.start()
        poller.stop()
        calls = on_tick.call_count
        threading.Event().wait(0.05)
        assert on_tick.call_count == calls

    def test_tick_errors_are_logged_not_raised(self, caplog):
        """Test tick errors are logged not raised"""
        on_tick = Mock(side_effect=RuntimeError("boom"))
        poller = ClockPoller(10, on_tick)
        with caplog.at_level(logging.ERROR, logger="alarm_engine.poller"):
            poller.tick(WEDNESDAY_0730)
            poller.tick(WEDNESDAY_0730)
        assert on_tick.call_count == 2
        assert poller.tick_count == 2
        errors = [r for r in caplog.records if getattr(r, "event_type", None) == "error"]
        assert len(errors) == 2
        assert errors[0].error_type == "RuntimeError"
        assert errors[0].context == {"phase": "tick", "now": WEDNESDAY_0730.isoformat()}

    def test_interval_must_be_positive(self):
        """Test interval must be positive"""
        with pytest.raises(ValueError):
            ClockPoller(0, Mock())
