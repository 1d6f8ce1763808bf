"""
Configuration models for the alarm engine
"""

from pydantic import BaseModel, Field
from typing import Literal
import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Use ALARM_BASE_DIR for all file paths
BASE_DIR = os.path.expanduser(os.getenv("ALARM_BASE_DIR", "~/.alarmclock"))
DATA_DIR = os.path.join(BASE_DIR, "data")


class NotificationChannel(BaseModel):
    """Notification channel and the fixed message posted when an alarm fires"""
    channel_id: str = Field(default="alarm_channel_id", description="Stable channel identity")
    channel_name: str = Field(default="Alarm Channel", description="User-visible channel name")
    description: str = Field(default="Channel for alarm notifications", description="Channel description")
    importance: str = Field(default="max", description="Channel importance")
    priority: str = Field(default="high", description="Notification priority")
    ticker: str = Field(default="ticker", description="Accessibility ticker text")
    app_name: str = Field(default="Alarm Clock", description="Application name shown by the desktop")
    notification_id: int = Field(default=0, ge=0, description="Notification id; reused so a new alarm replaces the last")
    title: str = Field(default="Alarm Ringing", description="Notification title")
    body: str = Field(default="It's time!", description="Notification body")
    timeout_s: int = Field(default=30, ge=1, le=600, description="Seconds the desktop keeps the notification up")


class Timings(BaseModel):
    """Timing configuration for polling and firing"""
    poll_interval_s: float = Field(default=10.0, ge=1.0, le=60.0, description="Clock poller tick period; at most one minute so no matching minute is skipped")
    misfire_grace_s: int = Field(default=60, ge=1, le=3600, description="How late an exact one-shot may still run")
    shutdown_timeout_s: float = Field(default=2.0, ge=0.1, le=30.0, description="Join timeout when stopping the poller thread")


class AlarmEngineConfig(BaseModel):
    """Main configuration for the alarm engine"""
    store_path: str = Field(
        default_factory=lambda: os.path.join(DATA_DIR, "alarms.json"),
        description="Key-value file holding the alarm list"
    )
    storage_backend: Literal["file", "memory"] = Field(default="file", description="Key-value store backend")
    storage_key: str = Field(default="alarms", description="Fixed key under which the alarm list is stored")
    scheduling_mode: Literal["poll", "analytic"] = Field(
        default="poll",
        description="poll: match every tick and request a one-shot; analytic: arm each alarm's next occurrence"
    )
    timings: Timings = Field(default_factory=Timings, description="Timing configuration")
    notification: NotificationChannel = Field(default_factory=NotificationChannel, description="Notification channel")
    notifier_backend: Literal["plyer", "log"] = Field(default="plyer", description="Notification backend")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|text|simple)")

    @classmethod
    def from_env(cls) -> "AlarmEngineConfig":
        """Create configuration from environment variables"""
        load_dotenv()

        base_dir = os.path.expanduser(os.getenv("ALARM_BASE_DIR", "~/.alarmclock"))
        data_dir = os.path.join(base_dir, "data")

        timings = Timings(
            poll_interval_s=float(os.getenv("ALARM_POLL_INTERVAL_S", "10.0")),
            misfire_grace_s=int(os.getenv("ALARM_MISFIRE_GRACE_S", "60")),
            shutdown_timeout_s=float(os.getenv("ALARM_SHUTDOWN_TIMEOUT_S", "2.0")),
        )

        return cls(
            store_path=os.getenv("ALARM_STORE_PATH", os.path.join(data_dir, "alarms.json")),
            storage_backend=os.getenv("ALARM_STORAGE_BACKEND", "file"),
            scheduling_mode=os.getenv("ALARM_SCHEDULING_MODE", "poll"),
            timings=timings,
            notifier_backend=os.getenv("ALARM_NOTIFIER", "plyer"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json")
        )
