"""
Test doubles for the host services the alarm engine consumes
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Sequence, Tuple

from alarm_engine.deferred import DeferredExecutor
from alarm_engine.errors import NotificationDisplayFailure, SchedulingRejected
from alarm_engine.models import Alarm, ScheduleResult, TimeOfDay
from alarm_engine.notifications import Notifier

# 2026-10-21 is a Wednesday, 2026-10-19 a Monday
WEDNESDAY_0730 = datetime(2026, 10, 21, 7, 30, 0)
MONDAY_0800 = datetime(2026, 10, 19, 8, 0, 0)


class RecordingExecutor(DeferredExecutor):
    """Deferred-execution service that keeps requests in a dict keyed by identifier"""

    def __init__(self, reject: bool = False):
        self.reject = reject
        self.initialized = False
        self.shut_down = False
        self.pending: Dict[int, Tuple[datetime, Callable[..., Any], Tuple[Any, ...]]] = {}
        self.requests: List[Tuple[datetime, int]] = []

    def initialize(self) -> None:
        self.initialized = True

    def schedule_one_shot_at(self, instant: datetime, identifier: int,
                             callback: Callable[..., Any], args: Sequence[Any] = (),
                             exact: bool = True, wake: bool = True) -> ScheduleResult:
        self.requests.append((instant, identifier))
        if self.reject:
            raise SchedulingRejected("rejected by test executor", identifier)
        self.pending[identifier] = (instant, callback, tuple(args))
        return ScheduleResult.SCHEDULED

    def cancel(self, identifier: int) -> bool:
        return self.pending.pop(identifier, None) is not None

    def pending_identifiers(self) -> List[int]:
        return list(self.pending)

    def shutdown(self) -> None:
        self.shut_down = True


class RecordingNotifier(Notifier):
    """Notifier that records what it was asked to show"""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.shown: List[Tuple[int, str, str]] = []

    def _display(self, notification_id, title, body, channel) -> None:
        if self.fail:
            raise NotificationDisplayFailure("display unavailable")
        self.shown.append((notification_id, title, body))


class FixedClock:
    """Callable clock the tests can move"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_alarm(alarm_id: str = "2026-10-18 09:00:00.000001", hour: int = 7, minute: int = 30,
               days=None, is_set: bool = True, **kwargs) -> Alarm:
    if days is None:
        days = [False, False, True, False, False, False, False]
    return Alarm(id=alarm_id, time=TimeOfDay(hour, minute), days=days, is_set=is_set, **kwargs)
