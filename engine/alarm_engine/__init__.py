"""
Alarm Engine

Persist recurring alarms, detect when they are due, and fire them through a
deferred one-shot service and desktop notifications.
"""

__version__ = "1.0.0"
__author__ = "Alarm Clock"

from .session import AlarmSession
from .config import AlarmEngineConfig
from .models import Alarm, TimeOfDay, CommitResult, DeleteResult, ScheduleResult, LoadReport
from .errors import (
    AlarmEngineError, PersistenceFailure, DeserializationFailure,
    SchedulingRejected, NotificationDisplayFailure
)

__all__ = [
    "AlarmSession",
    "AlarmEngineConfig",
    "Alarm",
    "TimeOfDay",
    "CommitResult",
    "DeleteResult",
    "ScheduleResult",
    "LoadReport",
    "AlarmEngineError",
    "PersistenceFailure",
    "DeserializationFailure",
    "SchedulingRejected",
    "NotificationDisplayFailure"
]
