"""
Data models and enums for the alarm engine
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from .errors import DeserializationFailure

DAYS_PER_WEEK = 7
DEFAULT_COLOR = 0xFF2196F3  # material blue, opaque
DEFAULT_HOUR = 4
DEFAULT_MINUTE = 20


class CommitResult(Enum):
    """Outcome of committing an alarm to the alarm set"""
    INSERTED = "inserted"
    REPLACED = "replaced"


class DeleteResult(Enum):
    """Outcome of deleting an alarm by id"""
    REMOVED = "removed"
    NOT_FOUND = "not_found"


class ScheduleResult(Enum):
    """Outcome of a one-shot request to the deferred-execution service"""
    SCHEDULED = "scheduled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TimeOfDay:
    """Wall-clock time of day without date or timezone"""
    hour: int
    minute: int

    @property
    def is_valid(self) -> bool:
        """Check that hour and minute are within clock ranges"""
        return (
            isinstance(self.hour, int) and isinstance(self.minute, int)
            and 0 <= self.hour <= 23 and 0 <= self.minute <= 59
        )

    def format(self) -> str:
        return f"{self.hour}:{self.minute:02d}"


def new_alarm_id(now: Optional[datetime] = None) -> str:
    """Alarm ids are the string form of the creation timestamp"""
    return str(now or datetime.now())


@dataclass
class Alarm:
    """A recurring alarm; identity is ``id``"""
    id: str
    time: TimeOfDay
    days: List[bool]
    is_set: bool = False
    color: int = DEFAULT_COLOR
    name: str = ""
    audio_path: Optional[str] = None
    audio_url: str = ""

    def __post_init__(self):
        self.days = list(self.days)
        if len(self.days) != DAYS_PER_WEEK:
            raise ValueError(f"days must have {DAYS_PER_WEEK} entries, got {len(self.days)}")

    def copy(self) -> "Alarm":
        """Independent copy for read-only snapshots"""
        return Alarm(
            id=self.id,
            time=self.time,
            days=list(self.days),
            is_set=self.is_set,
            color=self.color,
            name=self.name,
            audio_path=self.audio_path,
            audio_url=self.audio_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the field-tagged wire record"""
        return {
            "id": self.id,
            "time": {
                "hour": self.time.hour,
                "minute": self.time.minute,
            },
            "days": list(self.days),
            "isSet": self.is_set,
            "color": self.color,
            "name": self.name,
            "audioPath": self.audio_path,
            "audioURL": self.audio_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alarm":
        """Create an Alarm from a wire record.

        Every field except ``audioPath`` is required and type-checked; a bad
        record raises DeserializationFailure instead of producing an alarm with
        defaulted fields.
        """
        if not isinstance(data, dict):
            raise DeserializationFailure(f"alarm record must be an object, got {type(data).__name__}")

        alarm_id = _require(data, "id", str)
        time_data = _require(data, "time", dict)
        hour = _require(time_data, "hour", int, prefix="time.")
        minute = _require(time_data, "minute", int, prefix="time.")

        days = _require(data, "days", list)
        if len(days) != DAYS_PER_WEEK or not all(isinstance(d, bool) for d in days):
            raise DeserializationFailure(
                f"days must be a list of {DAYS_PER_WEEK} booleans", field="days"
            )

        audio_path = data.get("audioPath")
        if audio_path is not None and not isinstance(audio_path, str):
            raise DeserializationFailure("audioPath must be a string or null", field="audioPath")

        return cls(
            id=alarm_id,
            time=TimeOfDay(hour=hour, minute=minute),
            days=days,
            is_set=_require(data, "isSet", bool),
            color=_require(data, "color", int),
            name=_require(data, "name", str),
            audio_path=audio_path,
            audio_url=_require(data, "audioURL", str),
        )


def _require(data: Dict[str, Any], key: str, expected: type, prefix: str = "") -> Any:
    if key not in data:
        raise DeserializationFailure(f"missing field {prefix}{key}", field=prefix + key)
    value = data[key]
    # bool is an int subclass; reject it where a number is expected
    if expected is int and isinstance(value, bool):
        raise DeserializationFailure(f"{prefix}{key} must be int, got bool", field=prefix + key)
    if not isinstance(value, expected):
        raise DeserializationFailure(
            f"{prefix}{key} must be {expected.__name__}, got {type(value).__name__}",
            field=prefix + key,
        )
    return value


@dataclass
class LoadReport:
    """Result of loading the alarm set from the store"""
    alarms: List[Alarm] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging"""
        return {
            "loaded": len(self.alarms),
            "skipped": self.skipped,
        }
