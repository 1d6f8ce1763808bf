"""
Decide which alarms are due at a given moment
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .models import Alarm, DAYS_PER_WEEK


def _active_on(alarm: Alarm, weekday: int) -> bool:
    days = alarm.days
    return len(days) == DAYS_PER_WEEK and bool(days[weekday])


def is_due(alarm: Alarm, now: datetime) -> bool:
    """True when a set alarm is active today and its time equals now to the minute"""
    if not alarm.is_set:
        return False
    # datetime.weekday() is already Monday=0 .. Sunday=6
    if not _active_on(alarm, now.weekday()):
        return False
    return alarm.time.hour == now.hour and alarm.time.minute == now.minute


def due_alarms(now: datetime, alarms: Iterable[Alarm]) -> List[Alarm]:
    """Return the alarms due at ``now``, in input order.

    Seconds are ignored and there is no tolerance window: an alarm set for
    07:30 is due for any ``now`` between 07:30:00 and 07:30:59 and at no other
    time, so callers must evaluate at least once a minute.
    """
    return [alarm for alarm in alarms if is_due(alarm, now)]


def next_occurrence(alarm: Alarm, after: datetime) -> Optional[datetime]:
    """Earliest instant strictly after ``after`` at which the alarm is due.

    Returns None for alarms that are unset, have no active day, or carry an
    out-of-range time.
    """
    if not alarm.is_set or not alarm.time.is_valid:
        return None
    if len(alarm.days) != DAYS_PER_WEEK or not any(alarm.days):
        return None

    start = after.replace(hour=alarm.time.hour, minute=alarm.time.minute, second=0, microsecond=0)
    # Eight candidates: today can be active but already past
    for offset in range(DAYS_PER_WEEK + 1):
        candidate = start + timedelta(days=offset)
        if candidate > after and alarm.days[candidate.weekday()]:
            return candidate
    return None
