"""
Logging utilities for structured logging
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class AlarmEngineFilter(logging.Filter):
    """Attach alarm context to records that carry an alarm id"""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, 'alarm_id'):
            record.alarm_context = {
                "alarm_id": record.alarm_id,
                "identifier": getattr(record, 'identifier', None)
            }
        return True


def setup_logging(log_level: str = "INFO", log_format: str = "json",
                  log_file: Optional[str] = None) -> None:
    """
    Setup structured logging for the alarm engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ("json", "text" or "simple")
        log_file: Optional log file path
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter = JSONFormatter()
    elif log_format.lower() == "simple":
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(AlarmEngineFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(AlarmEngineFilter())
        root_logger.addHandler(file_handler)

    # APScheduler logs every job submission at INFO
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').disabled = True


def get_logger(name: str) -> logging.Logger:
    """
    Get logger with alarm engine context.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_tick(logger: logging.Logger, now: datetime, checked: int, due: int) -> None:
    """
    Log one clock poller evaluation.

    Args:
        logger: Logger instance
        now: Moment the tick evaluated
        checked: Number of alarms in the snapshot
        due: Number of alarms found due
    """
    logger.debug(
        f"Tick at {now:%H:%M:%S}: {due} of {checked} alarm(s) due",
        extra={
            "event_type": "tick",
            "tick_at": now.isoformat(),
            "checked": checked,
            "due": due
        }
    )


def log_schedule_request(logger: logging.Logger, alarm_id: str, identifier: int,
                         instant: datetime, result: str, **kwargs) -> None:
    """
    Log a one-shot request to the deferred-execution service.

    Args:
        logger: Logger instance
        alarm_id: Alarm id
        identifier: Numeric request identifier
        instant: Requested fire time
        result: "scheduled" or "rejected"
        **kwargs: Additional context
    """
    level = logging.INFO if result == "scheduled" else logging.WARNING
    logger.log(
        level,
        f"One-shot for alarm {alarm_id} at {instant:%Y-%m-%d %H:%M}: {result}",
        extra={
            "alarm_id": alarm_id,
            "identifier": identifier,
            "event_type": "schedule",
            "instant": instant.isoformat(),
            "result": result,
            **kwargs
        }
    )


def log_fire(logger: logging.Logger, alarm_id: str, displayed: bool) -> None:
    """
    Log a fired alarm callback.

    Args:
        logger: Logger instance
        alarm_id: Alarm id
        displayed: Whether the notification was shown
    """
    logger.info(
        f"Alarm {alarm_id} fired (notification displayed: {displayed})",
        extra={
            "alarm_id": alarm_id,
            "event_type": "fire",
            "displayed": displayed
        }
    )


def log_store_event(logger: logging.Logger, action: str, key: str, count: int,
                    **kwargs) -> None:
    """
    Log a store read or write.

    Args:
        logger: Logger instance
        action: "save" or "load"
        key: Storage key
        count: Number of records
        **kwargs: Additional context
    """
    logger.info(
        f"Store {action}: {count} record(s) under '{key}'",
        extra={
            "event_type": "store",
            "store_action": action,
            "key": key,
            "count": count,
            **kwargs
        }
    )


def log_error(logger: logging.Logger, alarm_id: Optional[str], error: Exception,
              context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log errors with context.

    Args:
        logger: Logger instance
        alarm_id: Alarm id, if the error concerns one alarm
        error: Exception that occurred
        context: Additional context
    """
    logger.error(
        f"Error occurred: {str(error)}",
        extra={
            "alarm_id": alarm_id,
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=True
    )
