"""
Exception hierarchy for the alarm engine
"""


class AlarmEngineError(Exception):
    """Base class for all alarm engine errors"""


class PersistenceFailure(AlarmEngineError):
    """Host key-value store rejected a read or write"""


class DeserializationFailure(AlarmEngineError, ValueError):
    """A stored alarm record is missing a field or has a wrong-typed value"""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class SchedulingRejected(AlarmEngineError):
    """Deferred-execution service refused a one-shot request"""

    def __init__(self, message: str, identifier: int = None):
        super().__init__(message)
        self.identifier = identifier


class NotificationDisplayFailure(AlarmEngineError):
    """Notification backend could not display a notification"""
